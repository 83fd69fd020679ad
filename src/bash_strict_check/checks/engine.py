from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from bash_strict_check.checks.pipelines import check_pipelines, check_strict_reset
from bash_strict_check.checks.preamble import (
    check_err_trap,
    check_errtrace,
    check_shebang,
    check_strict_flags,
)
from bash_strict_check.checks.tracing import check_trace_flag
from bash_strict_check.config import ConfigError
from bash_strict_check.models import ERROR, SEVERITIES, WARNING, Finding, LintConfig, Report, Rule, Script
from bash_strict_check.shell import ParsedScript, parse_pragma, parse_script

logger = logging.getLogger(__name__)

EVIDENCE_LIMIT = 300

# Evaluation order is the order of this tuple.
DEFAULT_RULES: tuple[Rule, ...] = (
    Rule("shebang-check", "First line is a shebang invoking the target shell", ERROR, check_shebang),
    Rule("err-trap-check", "An ERR trap is registered", WARNING, check_err_trap),
    Rule("strict-flags-check", "errexit, nounset and pipefail are enabled together", ERROR, check_strict_flags),
    Rule("errtrace-check", "errtrace is on when an ERR trap is registered", WARNING, check_errtrace),
    Rule("trace-flag-check", "xtrace is only enabled behind a guard or debug marker", WARNING, check_trace_flag),
    Rule("strict-reset-check", "Strict-mode flags are not switched back off", WARNING, check_strict_reset),
    Rule("pipeline-check", "Pipelines only run with pipefail enabled", WARNING, check_pipelines),
)


class EngineError(RuntimeError):
    pass


@dataclass
class Suppressions:
    file_wide: set[str] = field(default_factory=set)
    by_line: dict[int, set[str]] = field(default_factory=dict)

    @classmethod
    def from_parsed(cls, parsed: ParsedScript) -> Suppressions:
        suppressions = cls()
        for line in parsed.logical_lines:
            pragma = parse_pragma(line.comment)
            if pragma is None:
                continue
            scope, rule_ids = pragma
            if scope == "disable-file":
                suppressions.file_wide.update(rule_ids)
                continue
            # A pragma covers its own lines and the line right after it.
            for line_number in range(line.line_number, line.end_line + 2):
                suppressions.by_line.setdefault(line_number, set()).update(rule_ids)
        return suppressions

    def covers(self, rule_id: str, line_number: int | None) -> bool:
        if rule_id in self.file_wide:
            return True
        if line_number is None:
            return False
        return rule_id in self.by_line.get(line_number, set())


class RuleEngine:
    def __init__(self, rules: Iterable[Rule]):
        self._rules: list[Rule] = []
        seen: set[str] = set()
        for rule in rules:
            if rule.rule_id in seen:
                raise EngineError(f"Duplicate rule identifier: {rule.rule_id}")
            if rule.severity not in SEVERITIES:
                raise EngineError(f"Rule {rule.rule_id} has unknown severity: {rule.severity}")
            seen.add(rule.rule_id)
            self._rules.append(rule)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return tuple(self._rules)

    def evaluate(self, script: Script, config: LintConfig | None = None) -> Report:
        config = config or LintConfig()
        parsed = parse_script(script)
        suppressions = Suppressions.from_parsed(parsed)

        findings: list[Finding] = []
        for rule in self._rules:
            try:
                matches = rule.check(parsed, config)
            except Exception as exc:
                raise EngineError(f"Rule {rule.rule_id} failed on {script.path}: {exc}") from exc

            for match in matches:
                if suppressions.covers(rule.rule_id, match.line_number):
                    logger.debug("Suppressed %s at %s:%s", rule.rule_id, script.path, match.line_number)
                    continue
                findings.append(
                    Finding(
                        rule_id=rule.rule_id,
                        severity=rule.severity,
                        message=match.message,
                        line_number=match.line_number,
                        evidence=match.evidence[:EVIDENCE_LIMIT],
                        path=script.path,
                    )
                )

        logger.debug("Evaluated %d rules on %s: %d findings", len(self._rules), script.path, len(findings))
        return Report(script_path=script.path, findings=tuple(findings))


def build_engine(config: LintConfig, rules: Sequence[Rule] = DEFAULT_RULES) -> RuleEngine:
    ids = [rule.rule_id for rule in rules]
    duplicates = sorted({rule_id for rule_id in ids if ids.count(rule_id) > 1})
    if duplicates:
        raise EngineError(f"Duplicate rule identifiers: {', '.join(duplicates)}")

    known = set(ids)
    overrides = dict(config.severity_overrides)
    unknown = sorted((set(config.skip_rules) | set(overrides)) - known)
    if unknown:
        raise ConfigError(f"Unknown rule identifiers: {', '.join(unknown)} (known: {', '.join(ids)})")

    selected: list[Rule] = []
    for rule in rules:
        if rule.rule_id in config.skip_rules:
            logger.debug("Skipping rule %s", rule.rule_id)
            continue
        if rule.rule_id in overrides:
            rule = replace(rule, severity=overrides[rule.rule_id])
        selected.append(rule)

    return RuleEngine(selected)
