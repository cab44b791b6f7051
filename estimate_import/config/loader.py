from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_PARENT_TABLE,
    DEFAULT_CHILD_TABLE,
    DEFAULT_PREVIEW_LIMIT,
    DEFAULT_REPEAT_RATIO_THRESHOLD,
    DatabaseConfig,
    ImportConfig,
    TableConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against schemas/config_schema.json
- Apply defaults (tables, threshold, preview limit)
- Resolve a relative synonyms path against the config file's directory
"""

SCHEMA_DIR = Path(__file__).with_name("schemas")
SCHEMA_PATH = SCHEMA_DIR / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the data
            fails validation (missing keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    tables_raw = data.get("tables") or {}
    tables = TableConfig(
        parents=tables_raw.get("parents", DEFAULT_PARENT_TABLE),
        children=tables_raw.get("children", DEFAULT_CHILD_TABLE),
    )

    synonyms_path = None
    if data.get("synonyms"):
        synonyms_path = Path(data["synonyms"])
        if not synonyms_path.is_absolute():
            synonyms_path = path.parent / synonyms_path

    return ImportConfig(
        user_id=data["user_id"],
        database=db,
        tables=tables,
        synonyms_path=synonyms_path,
        repeat_ratio_threshold=float(
            data.get("repeat_ratio_threshold", DEFAULT_REPEAT_RATIO_THRESHOLD)
        ),
        preview_limit=data.get("preview_limit", DEFAULT_PREVIEW_LIMIT),
        timeout_seconds=data.get("timeout_seconds"),
        keep_na_strings=data.get("keep_na_strings"),
    )
