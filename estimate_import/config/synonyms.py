from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.records import EstimateStatus
from ..models.synonyms import ItemField, ParentField, Placeholders, SynonymDictionary
from ..services.column_mapper import normalize_header

"""Synonym dictionary loader.

Dictionaries are YAML data files (see ``synonyms_sv.yml``) validated against
``schemas/synonyms_schema.json`` before use. Mapping keys are normalized with
the same header normalizer the column mapper uses, so a data file may spell
headers with any casing or spacing.
"""

__all__ = [
    "SynonymDictionaryError",
    "DEFAULT_SYNONYMS_PATH",
    "SYNONYMS_SCHEMA_PATH",
    "load_synonyms",
    "default_synonyms",
]

DEFAULT_SYNONYMS_PATH = Path(__file__).with_name("synonyms_sv.yml")
SYNONYMS_SCHEMA_PATH = Path(__file__).with_name("schemas") / "synonyms_schema.json"


class SynonymDictionaryError(Exception):
    """Raised when a synonym dictionary file is missing or malformed."""


def _validate_synonyms_schema(data: Any, source: Path) -> None:
    if not SYNONYMS_SCHEMA_PATH.exists():
        raise SynonymDictionaryError(f"synonyms schema not found: {SYNONYMS_SCHEMA_PATH}")
    try:
        schema = json.loads(SYNONYMS_SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise SynonymDictionaryError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise SynonymDictionaryError(
            f"{source}: synonyms validation failed at {e.json_path}: {e.message}"
        ) from e


def _table(raw: dict[str, str], enum_cls: type) -> dict[str, Any]:
    return {normalize_header(str(synonym)): enum_cls(target) for synonym, target in raw.items()}


def _lowered(values: list[str]) -> tuple[str, ...]:
    return tuple(v.strip().lower() for v in values)


def load_synonyms(path: Path) -> SynonymDictionary:
    if not path.exists():
        raise SynonymDictionaryError(f"synonym dictionary not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise SynonymDictionaryError(f"invalid yaml in {path}: {e}") from e

    _validate_synonyms_schema(data, path)

    return SynonymDictionary(
        version=str(data["version"]),
        locale=data["locale"],
        parent_fields=_table(data["parent_fields"], ParentField),
        item_fields=_table(data["item_fields"], ItemField),
        status_keywords=_lowered(data.get("status_keywords", [])),
        default_status=EstimateStatus(data.get("default_status", EstimateStatus.DRAFT.value)),
        completed_status=EstimateStatus(
            data.get("completed_status", EstimateStatus.COMPLETED.value)
        ),
        placeholders=Placeholders(**data.get("placeholders", {})),
        material_categories=frozenset(_lowered(data.get("material_categories", []))),
        subcontractor_categories=frozenset(_lowered(data.get("subcontractor_categories", []))),
    )


def default_synonyms() -> SynonymDictionary:
    return load_synonyms(DEFAULT_SYNONYMS_PATH)
