import pytest

from bash_strict_check.checks import DEFAULT_RULES, EngineError, RuleEngine, build_engine
from bash_strict_check.config import ConfigError
from bash_strict_check.models import ERROR, WARNING, LintConfig, Match, Rule, Script


def _always(line_number):
    def check(parsed, config):
        return [Match(line_number, "always fires", parsed.line_text(line_number))]

    return check


def test_engine_rejects_duplicate_rule_ids():
    rule = Rule("dup", "duplicate", ERROR, _always(1))

    with pytest.raises(EngineError, match="dup"):
        RuleEngine([rule, rule])

    with pytest.raises(EngineError):
        build_engine(LintConfig(), rules=(rule, rule))


def test_engine_rejects_unknown_severity():
    with pytest.raises(EngineError):
        RuleEngine([Rule("odd", "odd severity", "fatal", _always(1))])


def test_engine_evaluates_all_rules_in_registration_order():
    engine = RuleEngine(
        [
            Rule("second", "b", WARNING, _always(2)),
            Rule("first", "a", ERROR, _always(1)),
        ]
    )

    report = engine.evaluate(Script.from_text("x.sh", "one\ntwo\n"))

    assert [item.rule_id for item in report.findings] == ["second", "first"]
    assert [item.evidence for item in report.findings] == ["two", "one"]
    assert all(item.path == "x.sh" for item in report.findings)
    assert report.error_count == 1
    assert report.warning_count == 1


def test_default_engine_keeps_declared_order():
    engine = build_engine(LintConfig())
    assert [rule.rule_id for rule in engine.rules] == [rule.rule_id for rule in DEFAULT_RULES]
    assert engine.rules[0].rule_id == "shebang-check"


def test_failing_rule_is_an_internal_error():
    def broken(parsed, config):
        raise KeyError("boom")

    engine = RuleEngine([Rule("broken", "raises", ERROR, broken)])

    with pytest.raises(EngineError, match="broken"):
        engine.evaluate(Script.from_text("x.sh", "echo\n"))


def test_build_engine_skips_rules():
    engine = build_engine(LintConfig(skip_rules=("err-trap-check", "pipeline-check")))
    ids = [rule.rule_id for rule in engine.rules]

    assert "err-trap-check" not in ids
    assert "pipeline-check" not in ids
    assert "strict-flags-check" in ids


def test_build_engine_rejects_unknown_rule_ids():
    with pytest.raises(ConfigError, match="no-such-rule"):
        build_engine(LintConfig(skip_rules=("no-such-rule",)))

    with pytest.raises(ConfigError):
        build_engine(LintConfig(severity_overrides=(("missing-rule", "error"),)))


def test_severity_override_promotes_err_trap_to_error():
    config = LintConfig(severity_overrides=(("err-trap-check", "error"),))
    report = build_engine(config).evaluate(Script.from_text("x.sh", "#!/usr/bin/env bash\necho hi\n"), config)

    assert report.error_count == 2
    assert {item.rule_id for item in report.findings} == {"err-trap-check", "strict-flags-check"}
