from __future__ import annotations

from bash_strict_check.models import LintConfig, Match
from bash_strict_check.shell import ParsedScript, Pipe, parse_set_options

STRICT_OPTIONS = ("errexit", "nounset", "pipefail", "errtrace")


def check_pipelines(parsed: ParsedScript, config: LintConfig) -> list[Match]:
    events: list[tuple[int, object]] = [(item.position, item) for item in parsed.pipes]
    events.extend((item.position, item) for item in parsed.commands("set"))
    events.sort(key=lambda event: event[0])

    pipefail = False
    flagged: set[int] = set()
    matches: list[Match] = []

    for _, event in events:
        if not isinstance(event, Pipe):
            pipefail = parse_set_options(event.args).get("pipefail", pipefail)
            continue
        if pipefail or event.line_number in flagged:
            continue
        flagged.add(event.line_number)
        matches.append(
            Match(
                event.line_number,
                f"pipeline runs without pipefail; a failure left of '{event.operator}' is silently ignored",
                parsed.line_text(event.line_number),
            )
        )

    return matches


def check_strict_reset(parsed: ParsedScript, config: LintConfig) -> list[Match]:
    matches: list[Match] = []
    for statement in parsed.commands("set"):
        options = parse_set_options(statement.args)
        disabled = [name for name in STRICT_OPTIONS if options.get(name) is False]
        if not disabled:
            continue
        matches.append(
            Match(
                statement.line_number,
                f"disables {', '.join(disabled)}; keep strict mode on and handle the expected failure explicitly",
                parsed.line_text(statement.line_number),
            )
        )
    return matches
