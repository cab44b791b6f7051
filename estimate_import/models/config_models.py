from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

"""Config dataclasses for the estimate import tool.

Built by ``estimate_import.config.loader.load_config`` from the validated YAML
file. Environment variables take precedence over ``DatabaseConfig`` values
when the CLI opens a connection.
"""

DEFAULT_PARENT_TABLE = "project_estimates"
DEFAULT_CHILD_TABLE = "estimate_items"
DEFAULT_REPEAT_RATIO_THRESHOLD = 0.8
DEFAULT_PREVIEW_LIMIT = 5


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback configuration."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class TableConfig:
    """Target tables for estimates (parents) and estimate lines (children)."""
    parents: str = DEFAULT_PARENT_TABLE
    children: str = DEFAULT_CHILD_TABLE


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for one import run."""
    user_id: str
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    tables: TableConfig = field(default_factory=TableConfig)
    synonyms_path: Path | None = None  # None -> built-in Swedish dictionary
    repeat_ratio_threshold: float = DEFAULT_REPEAT_RATIO_THRESHOLD
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    timeout_seconds: float | None = None
    keep_na_strings: list[str] | None = None
