from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the structured import error log.

One JSON Lines record per recovered or fatal failure. ``row`` is the 1-based
spreadsheet row the failing record was built from, or -1 for file-level
errors where no single row applies.

The record shape is fixed by ``config/schemas/error_log_schema.json``.
"""

__all__ = [
    "ErrorRecord",
    "ErrorType",
]


class ErrorType:
    """UPPER_SNAKE error classifications written to the error log."""
    DECODE_FAILURE = "DECODE_FAILURE"
    PREREQUISITE_FETCH_FAILURE = "PREREQUISITE_FETCH_FAILURE"
    PARENT_INSERT_FAILED = "PARENT_INSERT_FAILED"
    CHILDREN_INSERT_FAILED = "CHILDREN_INSERT_FAILED"
    ESTIMATE_NOT_FOUND = "ESTIMATE_NOT_FOUND"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Spreadsheet filename being imported
        sheet: Sheet name (first worksheet) or "<FILE_LEVEL>"
        row: Spreadsheet row number, -1 when unknown
        error_type: One of ErrorType
        message: Error description (database message, decode error, ...)
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line with exactly the dataclass keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
