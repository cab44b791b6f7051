from __future__ import annotations

from pathlib import Path

import pytest

from estimate_import.config.loader import ConfigError, load_config

"""Config schema contract: invalid configs are rejected before any import starts."""


def _write(temp_workdir: Path, text: str) -> Path:
    path = temp_workdir / "config" / "import.yml"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "text,fragment",
    [
        ("tables:\n  parents: x\n", "'user_id' is a required property"),
        ("user_id: ''\n", "config validation failed"),
        ("user_id: u1\nunknown_key: 1\n", "Additional properties"),
        ("user_id: u1\ntables:\n  parents: 'drop table;'\n", "does not match"),
        ("user_id: u1\nrepeat_ratio_threshold: 0\n", "config validation failed"),
        ("user_id: u1\nrepeat_ratio_threshold: 1.5\n", "config validation failed"),
        ("user_id: u1\npreview_limit: -1\n", "config validation failed"),
        ("user_id: u1\ntimeout_seconds: 0\n", "config validation failed"),
        ("user_id: u1\nkeep_na_strings: NA\n", "config validation failed"),
        ("user_id: u1\ndatabase:\n  port: '5432'\n", "config validation failed"),
    ],
)
def test_invalid_configs_rejected(temp_workdir: Path, text: str, fragment: str):
    with pytest.raises(ConfigError) as exc:
        load_config(_write(temp_workdir, text))
    assert fragment in str(exc.value)


def test_minimal_valid_config(temp_workdir: Path):
    cfg = load_config(_write(temp_workdir, "user_id: u1\nkeep_na_strings: [NA]\n"))
    assert cfg.keep_na_strings == ["NA"]


def test_repeat_ratio_threshold_of_one_is_valid(temp_workdir: Path):
    cfg = load_config(_write(temp_workdir, "user_id: u1\nrepeat_ratio_threshold: 1\n"))
    assert cfg.repeat_ratio_threshold == 1.0
