from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable

ERROR = "error"
WARNING = "warning"
SEVERITIES = (ERROR, WARNING)

DEFAULT_INCLUDE_EXTS = (".sh", ".bash")

DEFAULT_EXCLUDE_DIRS = (
    ".git",
    ".venv",
    "node_modules",
    "build",
    "dist",
    "__pycache__",
)


@dataclass(frozen=True)
class Script:
    path: str
    content: str
    lines: tuple[str, ...]

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @classmethod
    def from_text(cls, path: str, content: str) -> Script:
        return cls(path=path, content=content, lines=tuple(content.splitlines()))


@dataclass(frozen=True)
class Match:
    """Raw hit from a rule predicate; the engine turns it into a Finding."""

    line_number: int | None
    message: str
    evidence: str = ""


@dataclass(frozen=True)
class Finding:
    rule_id: str
    severity: str
    message: str
    line_number: int | None = None
    evidence: str = ""
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Rule:
    rule_id: str
    description: str
    severity: str
    check: Callable[..., list[Match]] = field(compare=False, repr=False)


@dataclass(frozen=True)
class Report:
    script_path: str
    findings: tuple[Finding, ...] = ()

    @property
    def error_count(self) -> int:
        return sum(1 for item in self.findings if item.severity == ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for item in self.findings if item.severity == WARNING)

    @property
    def passed(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.script_path,
            "status": "PASS" if self.passed else "FAIL",
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "findings": [item.to_dict() for item in self.findings],
        }


@dataclass(frozen=True)
class LintConfig:
    shell: str = "bash"
    skip_rules: tuple[str, ...] = ()
    severity_overrides: tuple[tuple[str, str], ...] = ()
    include_exts: tuple[str, ...] = DEFAULT_INCLUDE_EXTS
    exclude_dirs: tuple[str, ...] = DEFAULT_EXCLUDE_DIRS
    max_file_size_bytes: int = 2_000_000


@dataclass(frozen=True)
class InputError:
    path: str
    reason: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RunSummary:
    reports: tuple[Report, ...]
    input_errors: tuple[InputError, ...] = ()

    @property
    def error_count(self) -> int:
        return sum(report.error_count for report in self.reports)

    @property
    def warning_count(self) -> int:
        return sum(report.warning_count for report in self.reports)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scripts_checked": len(self.reports),
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "input_errors": [item.to_dict() for item in self.input_errors],
            "reports": [report.to_dict() for report in self.reports],
        }
