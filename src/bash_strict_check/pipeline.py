from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from bash_strict_check.checks import RuleEngine, build_engine
from bash_strict_check.loader import ScriptLoadError, discover_scripts, load_script
from bash_strict_check.models import InputError, LintConfig, Report, RunSummary

logger = logging.getLogger(__name__)


def run_check(
    paths: Iterable[str | Path],
    config: LintConfig,
    *,
    engine: RuleEngine | None = None,
) -> RunSummary:
    engine = engine or build_engine(config)

    reports: list[Report] = []
    input_errors: list[InputError] = []

    for target in expand_targets(paths, config):
        try:
            script = load_script(target)
        except ScriptLoadError as exc:
            logger.debug("Could not load %s: %s", target, exc)
            input_errors.append(InputError(path=exc.path, reason=exc.reason, message=str(exc)))
            continue

        reports.append(engine.evaluate(script, config))

    return RunSummary(reports=tuple(reports), input_errors=tuple(input_errors))


def expand_targets(paths: Iterable[str | Path], config: LintConfig) -> list[Path]:
    targets: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if not path.is_dir():
            targets.append(path)
            continue

        discovered = discover_scripts(
            path,
            include_exts=config.include_exts,
            exclude_dirs=config.exclude_dirs,
            max_file_size_bytes=config.max_file_size_bytes,
        )
        if not discovered:
            logger.warning("No shell scripts found under %s", path)
        targets.extend(discovered)
    return targets
