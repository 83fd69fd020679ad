import json
from pathlib import Path

import pytest

from bash_strict_check.config import ConfigError, apply_overrides, load_config, parse_rule_list
from bash_strict_check.models import LintConfig


def test_example_config_loads():
    root = Path(__file__).resolve().parents[1]
    config = load_config(root / "configs" / "config.example.json")

    assert config.shell == "bash"
    assert ".sh" in config.include_exts
    assert ("err-trap-check", "warning") in config.severity_overrides


def test_no_config_path_gives_defaults():
    assert load_config(None) == LintConfig()


def test_config_normalises_values(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "shell": "zsh",
                "skip_rules": ["pipeline-check"],
                "severity_overrides": {"err-trap-check": "ERROR"},
                "include_exts": ["sh", ".ZSH"],
            }
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.shell == "zsh"
    assert config.skip_rules == ("pipeline-check",)
    assert config.severity_overrides == (("err-trap-check", "error"),)
    assert config.include_exts == (".sh", ".zsh")


@pytest.mark.parametrize(
    "payload",
    [
        "[]",
        "{not json",
        json.dumps({"severity_overrides": {"err-trap-check": "fatal"}}),
        json.dumps({"skip_rules": "pipeline-check"}),
        json.dumps({"max_file_size_bytes": 0}),
        json.dumps({"shell": ""}),
    ],
)
def test_invalid_config_raises(tmp_path: Path, payload: str):
    path = tmp_path / "config.json"
    path.write_text(payload, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_missing_config_raises(tmp_path: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.json")


def test_cli_overrides_extend_config():
    base = LintConfig(skip_rules=("pipeline-check",))

    merged = apply_overrides(base, shell="zsh", skip=parse_rule_list(["err-trap-check,pipeline-check", " trace-flag-check "]))

    assert merged.shell == "zsh"
    assert merged.skip_rules == ("pipeline-check", "err-trap-check", "trace-flag-check")
    assert apply_overrides(base).shell == "bash"
