from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

"""Sync result models for the registration sheet sync.

SyncResult aggregates the outcome of one sync_workshop() run. It is returned
on full success and carried by PartialSyncFailure when one or more row upserts
failed.
"""


@dataclass(frozen=True)
class RowFailure:
    """A single row whose upsert failed (row_index = sheet row number)."""
    row_index: int
    error_type: str  # UPPER_SNAKE
    message: str


@dataclass(frozen=True)
class SyncResult:
    """Aggregated counts and timings for one workshop sync."""
    workshop_id: str
    total_rows: int  # parsed (non-blank) registrations
    succeeded: int  # upserts completed
    failed: int  # upserts raised
    skipped_rows: int  # blank data rows
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    failures: list[RowFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0
