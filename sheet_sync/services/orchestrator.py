from __future__ import annotations

import logging
from datetime import UTC, datetime

from ..db.store import RegistrationStore
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import workshop_logger
from ..models.config_models import ColumnConfig
from ..models.error_record import SHEET_LEVEL_ROW
from ..models.sync_result import RowFailure, SyncResult
from ..sheet.columns import resolve_columns
from ..sheet.fetcher import (
    EmptyOrInvalidSheetError,
    FetchError,
    MalformedResponseError,
    SheetFetcher,
    SheetSourceError,
)
from ..sheet.parser import parse_table
from .progress import ProgressTracker

"""Sync orchestration: fetch -> parse -> per-row upsert.

sync_workshop() drives one sync of a workshop's registration sheet:

1. Fetch the raw table through the SheetFetcher (source errors propagate,
   nothing is written).
2. Resolve columns from the header row and parse the data rows.
3. Upsert each registration in row order, one at a time, keyed on
   (workshop_id, row_index). A failing row is recorded and the remaining
   rows are still processed; earlier upserts are never rolled back.
4. Raise PartialSyncFailure if any row failed, else return the SyncResult.

No retries, locks or timeouts are applied here; the caller owns retry policy.
"""

__all__ = [
    "PartialSyncFailure",
    "ProcessingError",
    "sync_workshop",
]

_SOURCE_ERROR_TYPES: dict[type[SheetSourceError], str] = {
    FetchError: "FETCH_ERROR",
    MalformedResponseError: "MALFORMED_RESPONSE",
    EmptyOrInvalidSheetError: "EMPTY_OR_INVALID_SHEET",
}


class ProcessingError(Exception):
    """Base exception for sync processing errors."""


class PartialSyncFailure(ProcessingError):
    """One or more row upserts failed after the sheet parsed successfully."""

    def __init__(self, result: SyncResult) -> None:
        self.result = result
        super().__init__(
            f"sync of workshop {result.workshop_id} incomplete: "
            f"{result.failed} of {result.total_rows} rows not processed "
            f"({result.succeeded} succeeded)"
        )


def _flush_error_log(error_log: ErrorLogBuffer, log: logging.LoggerAdapter) -> None:
    counts = error_log.counts_by_type()
    try:
        path = error_log.flush()
    except OSError as e:
        # ログ書き込み失敗で同期結果を上書きしない
        log.warning("could not write error log: %s", e)
        return
    if path is not None:
        breakdown = " ".join(f"{t}={n}" for t, n in sorted(counts.items()))
        log.info("error details (%s) written to %s", breakdown, path)


def sync_workshop(
    workshop_id: str,
    source_url: str,
    *,
    fetcher: SheetFetcher,
    store: RegistrationStore,
    columns: ColumnConfig | None = None,
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool = True,
) -> SyncResult:
    """Sync one workshop's registrations from its sheet.

    Args:
        workshop_id: Owning workshop identifier (first half of the upsert key)
        source_url: Shared sheet URL passed through to the proxy
        fetcher: Configured SheetFetcher
        store: Storage collaborator with upsert-by-(workshop_id, row_index)
        columns: Header variants / positional fallbacks (None = built-in)
        error_log: Buffer receiving ErrorRecords (None = fresh buffer)
        show_progress: Allow a tqdm bar when stdout is a TTY

    Returns:
        SyncResult; ``succeeded`` is the number of rows processed

    Raises:
        SheetSourceError: fetch / response validation failed (no upserts attempted)
        PartialSyncFailure: at least one upsert failed
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    log = workshop_logger(__name__, workshop_id)

    try:
        table = fetcher.fetch(source_url)
    except SheetSourceError as e:
        error_type = _SOURCE_ERROR_TYPES.get(type(e), "SHEET_SOURCE_ERROR")
        error_log.add(workshop_id, SHEET_LEVEL_ROW, error_type, str(e))
        _flush_error_log(error_log, log)
        raise

    variants = columns.variants if columns is not None else None
    fallbacks = columns.fallbacks if columns is not None else None
    column_map = resolve_columns(table[0], variants, fallbacks)
    log.debug("resolved columns=%s", column_map.as_dict())

    rows = parse_table(table, column_map)
    skipped = rows.skipped_rows
    expected = rows.data_rows - skipped
    log.info("parsed %d registrations (%d blank rows skipped)", expected, skipped)

    failures: list[RowFailure] = []
    with ProgressTracker(expected, enabled=show_progress) as progress:
        # lazy: each registration is dropped once handed to the store
        for reg in rows:
            progress.start_row(reg.row_index)
            try:
                store.upsert_registration(workshop_id, reg.row_index, reg.to_fields())
            except Exception as e:
                failure = RowFailure(row_index=reg.row_index, error_type="UPSERT_ERROR", message=str(e))
                failures.append(failure)
                error_log.add(workshop_id, reg.row_index, failure.error_type, failure.message)
                log.warning("row=%d upsert failed: %s", reg.row_index, e)
                progress.finish_row(success=False)
            else:
                progress.finish_row(success=True)
        succeeded = progress.succeeded

    _flush_error_log(error_log, log)

    end_time = datetime.now(UTC)
    result = SyncResult(
        workshop_id=workshop_id,
        total_rows=succeeded + len(failures),
        succeeded=succeeded,
        failed=len(failures),
        skipped_rows=skipped,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        failures=failures,
    )
    if failures:
        raise PartialSyncFailure(result)
    return result
