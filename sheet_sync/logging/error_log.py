from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Sync error log buffering.

Errors collected during a sync (fetch failures, row upsert failures) are
buffered in memory and appended as JSON Lines to
``logs/sync-errors-YYYYMMDD-HHMMSS.log`` (UTC) when flushed. The file path is
fixed on first use so repeated flushes append to the same file.
"""

__all__ = [
    "ErrorLogBuffer",
    "ErrorRecord",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() writes JSON Lines.

    Serial use only; one buffer per sync run.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"sync-errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def add(self, workshop: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create, buffer and return a record stamped with the current time."""
        record = ErrorRecord.create(workshop, row, error_type, message)
        self.append(record)
        return record

    def counts_by_type(self) -> Counter[str]:
        """Buffered (not yet flushed) records per error_type."""
        return Counter(r.error_type for r in self._records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file.

        Returns the file written, or None when there was nothing to write
        (no empty log files are created).
        """
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
