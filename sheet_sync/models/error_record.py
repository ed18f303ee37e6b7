from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for sync error logging.

Structured record written as one JSON line per error. row=-1 is the sentinel
for sheet-level errors (fetch / parse) where no single row is responsible.
"""

__all__ = [
    "ErrorRecord",
    "SHEET_LEVEL_ROW",
]

SHEET_LEVEL_ROW = -1


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        workshop: Workshop identifier being synced
        row: Sheet row number (1-based, header = 1). -1 for sheet-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human-readable error message
    """
    timestamp: str
    workshop: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(workshop: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            workshop=workshop,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
