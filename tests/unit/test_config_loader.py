from __future__ import annotations

from pathlib import Path

import pytest

from estimate_import.config.loader import ConfigError, load_config
from estimate_import.models.config_models import DEFAULT_PREVIEW_LIMIT, DEFAULT_REPEAT_RATIO_THRESHOLD


def test_load_config_success(write_config: Path) -> None:
    cfg = load_config(write_config)
    assert cfg.user_id == "user-123"
    assert cfg.tables.parents == "project_estimates"
    assert cfg.tables.children == "estimate_items"
    assert cfg.preview_limit == 3
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.synonyms_path is None
    assert cfg.timeout_seconds is None


def test_load_config_defaults(temp_workdir: Path) -> None:
    path = temp_workdir / "config" / "import.yml"
    path.write_text("user_id: u1\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.repeat_ratio_threshold == DEFAULT_REPEAT_RATIO_THRESHOLD
    assert cfg.preview_limit == DEFAULT_PREVIEW_LIMIT
    assert cfg.tables.parents == "project_estimates"
    assert cfg.database.dsn is None
    assert cfg.keep_na_strings is None


def test_relative_synonyms_path_resolves_against_config_dir(temp_workdir: Path) -> None:
    path = temp_workdir / "config" / "import.yml"
    path.write_text("user_id: u1\nsynonyms: synonyms_en.yml\ntimeout_seconds: 30\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.synonyms_path == temp_workdir / "config" / "synonyms_en.yml"
    assert cfg.timeout_seconds == 30


def test_missing_file(temp_workdir: Path) -> None:
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "config" / "missing.yml")


def test_invalid_yaml(temp_workdir: Path) -> None:
    path = temp_workdir / "config" / "import.yml"
    path.write_text("user_id: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(path)


def test_non_mapping_top_level(temp_workdir: Path) -> None:
    path = temp_workdir / "config" / "import.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="top level must be a mapping"):
        load_config(path)
