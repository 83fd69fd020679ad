from __future__ import annotations

import re

from bash_strict_check.models import LintConfig, Match
from bash_strict_check.shell import ParsedScript, parse_set_options, parse_shebang

# A comment saying the trace is for debugging only, e.g. "# debug: remove before merge".
DEBUG_MARKER_RE = re.compile(r"debug|temporar", re.IGNORECASE)

GUARD_CONNECTORS = {"&&", "||"}

TRACE_MESSAGE = (
    "xtrace echoes every command, secrets included, to stderr; "
    "guard it behind a debug condition or mark it with a '# debug' comment"
)


def check_trace_flag(parsed: ParsedScript, config: LintConfig) -> list[Match]:
    matches: list[Match] = []

    first_line = parsed.script.lines[0] if parsed.script.lines else ""
    shebang = parse_shebang(first_line)
    if shebang is not None and parse_set_options(shebang.args).get("xtrace"):
        if not _has_marker(parsed, 1, 1):
            matches.append(Match(1, f"shebang enables tracing: {TRACE_MESSAGE}", first_line.strip()))

    for statement in parsed.commands("set"):
        if not parse_set_options(statement.args).get("xtrace"):
            continue
        if statement.conditional or statement.connector in GUARD_CONNECTORS:
            continue
        if _has_marker(parsed, statement.line_number, statement.end_line):
            continue
        matches.append(Match(statement.line_number, TRACE_MESSAGE, parsed.line_text(statement.line_number)))

    return matches


def _has_marker(parsed: ParsedScript, line_number: int, end_line: int) -> bool:
    return any(DEBUG_MARKER_RE.search(comment) for comment in parsed.comments_near(line_number, end_line))
