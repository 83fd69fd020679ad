from __future__ import annotations

from bash_strict_check.models import LintConfig, Match
from bash_strict_check.shell import ParsedScript, Statement, parse_set_options, parse_shebang, parse_trap

REQUIRED_FLAGS = ("errexit", "nounset", "pipefail")

STRICT_MODE_LINE = "set -Eeuo pipefail"


def check_shebang(parsed: ParsedScript, config: LintConfig) -> list[Match]:
    first_line = parsed.script.lines[0] if parsed.script.lines else ""
    shebang = parse_shebang(first_line)
    if shebang is None:
        return [Match(1, f"first line must be a '#!' line invoking {config.shell}", first_line.strip())]

    if shebang.interpreter != config.shell:
        found = shebang.interpreter or "nothing"
        return [Match(1, f"shebang invokes {found}, expected {config.shell}", first_line.strip())]

    if not shebang.via_env and not shebang.path.startswith("/"):
        return [Match(1, f"shebang interpreter path must be absolute: {shebang.path}", first_line.strip())]

    return []


def check_err_trap(parsed: ParsedScript, config: LintConfig) -> list[Match]:
    if err_traps(parsed):
        return []
    return [Match(None, "no 'trap ... ERR' handler is registered; failures exit without reporting where they happened")]


def check_strict_flags(parsed: ParsedScript, config: LintConfig) -> list[Match]:
    first_enabled: dict[str, int] = {}
    for statement in parsed.commands("set"):
        options = parse_set_options(statement.args)
        if all(options.get(name) for name in REQUIRED_FLAGS):
            return []
        for name in REQUIRED_FLAGS:
            if options.get(name):
                first_enabled.setdefault(name, statement.line_number)

    if not first_enabled:
        return [Match(None, f"strict mode is not enabled; add '{STRICT_MODE_LINE}' after the shebang")]

    line_number = min(first_enabled.values())
    missing = [name for name in REQUIRED_FLAGS if name not in first_enabled]
    if missing:
        message = f"strict mode is incomplete, missing {', '.join(missing)}; use '{STRICT_MODE_LINE}'"
    else:
        message = f"errexit, nounset and pipefail are split across lines; enable them together with '{STRICT_MODE_LINE}'"
    return [Match(line_number, message, parsed.line_text(line_number))]


def check_errtrace(parsed: ParsedScript, config: LintConfig) -> list[Match]:
    traps = err_traps(parsed)
    if not traps:
        return []

    for statement in parsed.commands("set"):
        if parse_set_options(statement.args).get("errtrace"):
            return []

    first = traps[0]
    return [
        Match(
            first.line_number,
            "ERR trap is registered but errtrace is off; add 'set -E' so it also fires in functions and subshells",
            parsed.line_text(first.line_number),
        )
    ]


def err_traps(parsed: ParsedScript) -> list[Statement]:
    traps: list[Statement] = []
    for statement in parsed.commands("trap"):
        handler, signals = parse_trap(statement.args)
        if handler is None or handler in {"", "-"}:
            continue
        if "ERR" in signals:
            traps.append(statement)
    return traps
