from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from bash_strict_check.models import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_INCLUDE_EXTS,
    SEVERITIES,
    LintConfig,
)

logger = logging.getLogger(__name__)

KNOWN_KEYS = {
    "shell",
    "skip_rules",
    "severity_overrides",
    "include_exts",
    "exclude_dirs",
    "max_file_size_bytes",
}


class ConfigError(ValueError):
    pass


def load_config(path: str | Path | None) -> LintConfig:
    if path is None:
        return LintConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file is not valid JSON: {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Config must be a JSON object")

    unknown = sorted(set(raw) - KNOWN_KEYS)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", config_path, ", ".join(unknown))

    shell = str(raw.get("shell", "bash")).strip()
    if not shell:
        raise ConfigError("'shell' must be a non-empty string")

    overrides_raw = raw.get("severity_overrides", {})
    if not isinstance(overrides_raw, dict):
        raise ConfigError("'severity_overrides' must be an object of rule id -> severity")

    overrides: list[tuple[str, str]] = []
    for rule_id, severity in overrides_raw.items():
        normalized = str(severity).strip().lower()
        if normalized not in SEVERITIES:
            raise ConfigError(
                f"Invalid severity for {rule_id}: {severity!r} (expected one of: {', '.join(SEVERITIES)})"
            )
        overrides.append((str(rule_id), normalized))

    try:
        max_file_size_bytes = int(raw.get("max_file_size_bytes", 2_000_000))
    except (TypeError, ValueError) as exc:
        raise ConfigError("'max_file_size_bytes' must be an integer") from exc
    if max_file_size_bytes <= 0:
        raise ConfigError("'max_file_size_bytes' must be positive")

    config = LintConfig(
        shell=shell,
        skip_rules=tuple(_ensure_string_list(raw.get("skip_rules", []), "skip_rules")),
        severity_overrides=tuple(overrides),
        include_exts=tuple(
            _normalize_ext(item)
            for item in _ensure_string_list(raw.get("include_exts", list(DEFAULT_INCLUDE_EXTS)), "include_exts")
        ),
        exclude_dirs=tuple(_ensure_string_list(raw.get("exclude_dirs", list(DEFAULT_EXCLUDE_DIRS)), "exclude_dirs")),
        max_file_size_bytes=max_file_size_bytes,
    )
    logger.debug("Loaded config from %s: %s", config_path, config)
    return config


def apply_overrides(
    config: LintConfig,
    *,
    shell: str | None = None,
    skip: Iterable[str] = (),
) -> LintConfig:
    skip_rules = list(config.skip_rules)
    for rule_id in skip:
        if rule_id not in skip_rules:
            skip_rules.append(rule_id)

    return replace(
        config,
        shell=shell.strip() if shell and shell.strip() else config.shell,
        skip_rules=tuple(skip_rules),
    )


def parse_rule_list(values: Iterable[str]) -> tuple[str, ...]:
    """Flatten repeated, comma-separated CLI values into rule ids."""
    rule_ids: list[str] = []
    for value in values:
        rule_ids.extend(item.strip() for item in value.split(",") if item.strip())
    return tuple(rule_ids)


def _normalize_ext(value: str) -> str:
    ext = value.strip().lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return ext


def _ensure_string_list(value: object, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of strings")
    return [str(item) for item in value]
