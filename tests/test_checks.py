import pytest

from bash_strict_check.checks import build_engine
from bash_strict_check.models import ERROR, WARNING, LintConfig, Script

PREAMBLE = (
    "#!/usr/bin/env bash\n"
    "trap 'echo \"Error on line $LINENO\" >&2' ERR\n"
    "set -Eeuo pipefail\n"
)


def _evaluate(text: str, config: LintConfig | None = None):
    config = config or LintConfig()
    return build_engine(config).evaluate(Script.from_text("test.sh", text), config)


def _by_rule(report, rule_id: str):
    return [item for item in report.findings if item.rule_id == rule_id]


def test_canonical_preamble_yields_no_findings():
    report = _evaluate(PREAMBLE)

    assert report.findings == ()
    assert report.passed


def test_shebang_and_echo_only_reports_missing_trap_and_flags():
    report = _evaluate("#!/usr/bin/env bash\necho hi\n")

    assert [item.rule_id for item in report.findings] == ["err-trap-check", "strict-flags-check"]
    assert _by_rule(report, "strict-flags-check")[0].severity == ERROR
    assert _by_rule(report, "err-trap-check")[0].line_number is None
    assert not report.passed


@pytest.mark.parametrize(
    "body",
    [
        "#!/usr/bin/env bash\necho hi\n",
        "",
        "#!/bin/bash\nset -e\n",
        "#!/bin/bash\nset -eu\nset -x\n",
        "#!/bin/bash\n# set -Eeuo pipefail\n",
        "#!/bin/bash\necho 'set -Eeuo pipefail'\n",
    ],
)
def test_missing_strict_flags_line_gives_exactly_one_error(body):
    findings = _by_rule(_evaluate(body), "strict-flags-check")

    assert len(findings) == 1
    assert findings[0].severity == ERROR


def test_strict_flags_accept_long_option_form():
    report = _evaluate("#!/bin/bash\ntrap 'x' ERR\nset -E -o errexit -o nounset -o pipefail\n")
    assert report.findings == ()


def test_strict_flags_incomplete_and_split_messages():
    partial = _by_rule(_evaluate("#!/bin/bash\nset -eu\n"), "strict-flags-check")
    assert partial[0].line_number == 2
    assert "pipefail" in partial[0].message

    split = _by_rule(_evaluate("#!/bin/bash\nset -e\nset -u\nset -o pipefail\n"), "strict-flags-check")
    assert len(split) == 1
    assert split[0].line_number == 2
    assert "split across lines" in split[0].message


@pytest.mark.parametrize(
    "first_line",
    ["set -Eeuo pipefail", "#!/bin/sh", "#!/usr/bin/env python3", "#!bash"],
)
def test_shebang_check_rejects_other_first_lines(first_line):
    findings = _by_rule(_evaluate(f"{first_line}\necho hi\n"), "shebang-check")

    assert len(findings) == 1
    assert findings[0].line_number == 1
    assert findings[0].severity == ERROR


def test_shebang_check_honours_configured_shell():
    config = LintConfig(shell="zsh")
    assert _by_rule(_evaluate("#!/usr/bin/env zsh\n", config), "shebang-check") == []
    assert len(_by_rule(_evaluate(PREAMBLE, config), "shebang-check")) == 1


def test_err_trap_reset_or_ignore_does_not_count():
    for trap in ("trap - ERR", "trap '' ERR", "trap -p ERR", "trap cleanup EXIT"):
        report = _evaluate(f"#!/bin/bash\n{trap}\nset -Eeuo pipefail\n")
        findings = _by_rule(report, "err-trap-check")
        assert len(findings) == 1
        assert findings[0].severity == WARNING


def test_errtrace_required_when_err_trap_registered():
    report = _evaluate("#!/bin/bash\ntrap 'cleanup' ERR\nset -euo pipefail\n")

    findings = _by_rule(report, "errtrace-check")
    assert len(findings) == 1
    assert findings[0].line_number == 2


def test_unguarded_trace_flag_is_flagged():
    report = _evaluate(PREAMBLE + "set -x\n")

    findings = _by_rule(report, "trace-flag-check")
    assert [item.line_number for item in findings] == [4]
    assert findings[0].severity == WARNING
    assert report.passed


def test_trace_flag_combined_with_strict_flags_is_flagged():
    report = _evaluate("#!/usr/bin/env bash\ntrap 'x' ERR\nset -Eeuxo pipefail\n")

    assert _by_rule(report, "strict-flags-check") == []
    assert [item.line_number for item in _by_rule(report, "trace-flag-check")] == [3]


@pytest.mark.parametrize(
    "snippet",
    [
        "# debug: remove before merging\nset -x\n",
        "set -x  # temporary\n",
        "set -o xtrace\n# DEBUG only\n",
        "set -x  # debugging only\n",
        "# temporarily enabled\nset -x\n",
        'if [[ "${DEBUG:-}" == "1" ]]; then\n  set -x\nfi\n',
        '[[ -n "${TRACE:-}" ]] && set -x\n',
        'case "${1:-}" in\n  -v) set -x ;;\nesac\n',
    ],
)
def test_guarded_or_marked_trace_flag_is_allowed(snippet):
    report = _evaluate(PREAMBLE + snippet)
    assert _by_rule(report, "trace-flag-check") == []


def test_comment_inside_command_substitution_does_not_hide_later_lines():
    report = _evaluate(PREAMBLE + "result=$(\n  # don't list hidden files\n  ls\n)\nset -x\nls | grep foo\n")

    assert [item.line_number for item in _by_rule(report, "trace-flag-check")] == [8]


def test_strict_flags_found_after_multiline_substitution():
    comment_first = "#!/usr/bin/env bash\nv=$(\n  # it's fine\n  date\n)\ntrap 'x' ERR\nset -Eeuo pipefail\n"
    heredoc_first = "#!/usr/bin/env bash\nmsg=$(cat <<EOF\nit's here\nEOF\n)\ntrap 'x' ERR\nset -Eeuo pipefail\n"

    for text in (comment_first, heredoc_first):
        report = _evaluate(text)
        assert _by_rule(report, "strict-flags-check") == []
        assert _by_rule(report, "errtrace-check") == []


def test_trace_flag_in_shebang_is_flagged():
    report = _evaluate("#!/bin/bash -x\ntrap 'x' ERR\nset -Eeuo pipefail\n")

    findings = _by_rule(report, "trace-flag-check")
    assert [item.line_number for item in findings] == [1]


def test_strict_reset_is_flagged():
    report = _evaluate(PREAMBLE + "set +e\nrisky_command\nset -e\n")

    findings = _by_rule(report, "strict-reset-check")
    assert [item.line_number for item in findings] == [4]
    assert "errexit" in findings[0].message


def test_pipelines_before_pipefail_are_flagged():
    report = _evaluate(
        "#!/bin/bash\n"
        "trap 'x' ERR\n"
        "ls | grep foo\n"
        "set -Eeuo pipefail\n"
        "ls | grep bar\n"
        "set +o pipefail\n"
        "ls |& grep baz\n"
    )

    findings = _by_rule(report, "pipeline-check")
    assert [item.line_number for item in findings] == [3, 7]
    assert "'|&'" in findings[1].message


def test_pipefail_enabled_earlier_on_same_line_covers_pipeline():
    report = _evaluate("#!/bin/bash\nset -o pipefail; ls | wc -l\n")
    assert _by_rule(report, "pipeline-check") == []


def test_inline_pragmas_suppress_findings():
    report = _evaluate(
        "#!/bin/bash\n"
        "# strict-check: disable-file=err-trap-check\n"
        "set -Eeuo pipefail\n"
        "# strict-check: disable=trace-flag-check\n"
        "set -x\n"
        "set +u  # strict-check: disable=strict-reset-check\n"
    )

    assert report.findings == ()


def test_evaluation_is_idempotent():
    script = Script.from_text("test.sh", "#!/bin/sh\nls | grep x\nset -x\n")
    engine = build_engine(LintConfig())

    assert engine.evaluate(script) == engine.evaluate(script)
