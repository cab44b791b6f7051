"""Domain models for the estimate spreadsheet import tool.

This package contains the value types passed between the sheet reader, the
normalization pipeline and the persistence collaborator.
"""

from .config_models import DatabaseConfig, ImportConfig, TableConfig
from .error_record import ErrorRecord, ErrorType
from .import_outcome import ImportOutcome
from .records import ChildRecord, EstimateStatus, ItemType, ParentRecord, normalize_key
from .row_data import RawRow, cell_text
from .synonyms import ItemField, ParentField, Placeholders, SynonymDictionary

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    "TableConfig",
    "SynonymDictionary",
    "Placeholders",
    "ParentField",
    "ItemField",
    # Pipeline models
    "RawRow",
    "cell_text",
    "ParentRecord",
    "ChildRecord",
    "EstimateStatus",
    "ItemType",
    "normalize_key",
    # Reporting models
    "ImportOutcome",
    "ErrorRecord",
    "ErrorType",
]
