from __future__ import annotations

import argparse
import json
import logging
import sys

from bash_strict_check.checks import EngineError, build_engine
from bash_strict_check.config import ConfigError, apply_overrides, load_config, parse_rule_list
from bash_strict_check.logging_config import setup_logging
from bash_strict_check.pipeline import run_check
from bash_strict_check.reporting import (
    EXIT_INPUT_ERROR,
    EXIT_INTERNAL_ERROR,
    EXIT_OK,
    build_payload,
    exit_code,
    format_summary,
    write_report_files,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bash-strict-check",
        description="Check Bash scripts for strict-mode conventions (shebang, ERR trap, set -Eeuo pipefail)",
    )
    parser.add_argument("paths", nargs="*", metavar="PATH", help="Script files or directories to check")
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument(
        "--skip",
        action="append",
        default=[],
        metavar="IDS",
        help="Comma-separated rule identifiers to skip (repeatable)",
    )
    parser.add_argument("--shell", default=None, help="Shell the shebang must invoke (default: bash)")
    parser.add_argument("--format", choices=["text", "json"], default="text")
    parser.add_argument("--report-dir", default=None, help="Also write summary.json and findings.csv here")
    parser.add_argument("--list-rules", action="store_true", help="List active rules and exit")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = apply_overrides(
            load_config(args.config),
            shell=args.shell,
            skip=parse_rule_list(args.skip),
        )
        engine = build_engine(config)
    except ConfigError as exc:
        parser.error(str(exc))
        return EXIT_INPUT_ERROR
    except EngineError as exc:
        print(f"internal error: {exc}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR

    if args.list_rules:
        for rule in engine.rules:
            print(f"{rule.rule_id:<18} {rule.severity:<7} {rule.description}")
        return EXIT_OK

    if not args.paths:
        parser.error("at least one PATH is required")
        return EXIT_INPUT_ERROR

    try:
        summary = run_check(args.paths, config, engine=engine)
    except EngineError as exc:
        print(f"internal error: {exc}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR

    for error in summary.input_errors:
        print(f"error: {error.message}", file=sys.stderr)

    if args.format == "json":
        print(json.dumps(build_payload(summary), indent=2, ensure_ascii=True))
    else:
        for line in format_summary(summary):
            print(line)

    if args.report_dir:
        files = write_report_files(summary, args.report_dir)
        logger.info("Wrote report files: %s", ", ".join(files.values()))

    return exit_code(summary)


if __name__ == "__main__":
    raise SystemExit(main())
