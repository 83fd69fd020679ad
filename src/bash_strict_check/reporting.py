from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path

from bash_strict_check.models import Finding, Report, RunSummary

EXIT_OK = 0
EXIT_INPUT_ERROR = 2
EXIT_RULE_VIOLATION = 3
EXIT_INTERNAL_ERROR = 4

FINDING_COLUMNS = ("path", "line_number", "rule_id", "severity", "message", "evidence")


def exit_code(summary: RunSummary) -> int:
    if summary.input_errors:
        return EXIT_INPUT_ERROR
    if any(not report.passed for report in summary.reports):
        return EXIT_RULE_VIOLATION
    return EXIT_OK


def format_finding(finding: Finding) -> str:
    line = finding.line_number if finding.line_number is not None else "-"
    return f"{finding.severity.upper():<7} {finding.rule_id:<18} {finding.path}:{line} {finding.message}"


def format_report(report: Report) -> list[str]:
    lines = [format_finding(item) for item in report.findings]
    status = "PASS" if report.passed else "FAIL"
    lines.append(
        f"{report.script_path}: {status} "
        f"({_plural(report.error_count, 'error')}, {_plural(report.warning_count, 'warning')})"
    )
    return lines


def format_summary(summary: RunSummary) -> list[str]:
    lines: list[str] = []
    for report in summary.reports:
        lines.extend(format_report(report))
    if len(summary.reports) > 1:
        failed = sum(1 for report in summary.reports if not report.passed)
        lines.append(
            f"{len(summary.reports)} scripts checked, {failed} failed "
            f"({_plural(summary.error_count, 'error')}, {_plural(summary.warning_count, 'warning')})"
        )
    return lines


def build_payload(summary: RunSummary) -> dict:
    payload = summary.to_dict()
    payload["generated_at"] = datetime.now(timezone.utc).isoformat()
    payload["exit_code"] = exit_code(summary)
    return payload


def write_report_files(summary: RunSummary, output_dir: str | Path) -> dict:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    summary_json = out_dir / "summary.json"
    findings_csv = out_dir / "findings.csv"

    rows = [
        {column: finding.to_dict()[column] for column in FINDING_COLUMNS}
        for report in summary.reports
        for finding in report.findings
    ]

    payload = build_payload(summary)
    payload["files"] = {
        "summary": str(summary_json.resolve()),
        "findings": str(findings_csv.resolve()),
    }

    _write_json(summary_json, payload)
    _write_csv(findings_csv, rows)
    return payload["files"]


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _write_json(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=True)


def _write_csv(path: Path, rows: list[dict]) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(FINDING_COLUMNS))
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
