from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from bash_strict_check.models import Script
from bash_strict_check.shell import parse_shebang

logger = logging.getLogger(__name__)

NOT_FOUND = "not found"
NOT_READABLE = "not readable"

SHELL_INTERPRETERS = {"sh", "bash", "dash", "ksh", "zsh"}


class ScriptLoadError(RuntimeError):
    def __init__(self, path: str | Path, reason: str, detail: str):
        super().__init__(f"Script {reason}: {path} ({detail})")
        self.path = str(path)
        self.reason = reason
        self.detail = detail


def load_script(path: str | Path) -> Script:
    script_path = Path(path)
    if not script_path.exists():
        raise ScriptLoadError(script_path, NOT_FOUND, "no such file")
    if not script_path.is_file():
        raise ScriptLoadError(script_path, NOT_READABLE, "not a regular file")

    try:
        content = script_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        raise ScriptLoadError(script_path, NOT_READABLE, "not UTF-8 text") from None
    except OSError as exc:
        raise ScriptLoadError(script_path, NOT_READABLE, exc.strerror or str(exc)) from exc

    script = Script.from_text(str(script_path), content)
    logger.debug("Loaded %s (%d lines)", script.path, script.line_count)
    return script


def discover_scripts(
    root: str | Path,
    *,
    include_exts: Iterable[str],
    exclude_dirs: Iterable[str],
    max_file_size_bytes: int,
) -> list[Path]:
    base = Path(root)
    include = {item.lower() for item in include_exts}
    exclude = set(exclude_dirs)

    found: list[Path] = []
    for path in sorted(base.rglob("*")):
        if not path.is_file():
            continue
        if any(part in exclude for part in path.relative_to(base).parts):
            continue

        try:
            if path.stat().st_size > max_file_size_bytes:
                logger.info("Skipping %s: larger than %d bytes", path, max_file_size_bytes)
                continue
        except OSError:
            continue

        suffix = path.suffix.lower()
        if suffix in include or (not suffix and _has_shell_shebang(path)):
            found.append(path)

    return found


def _has_shell_shebang(path: Path) -> bool:
    try:
        with path.open("rb") as handle:
            first = handle.readline(256)
    except OSError:
        return False

    shebang = parse_shebang(first.decode("utf-8", errors="ignore").rstrip("\r\n"))
    return shebang is not None and shebang.interpreter in SHELL_INTERPRETERS
