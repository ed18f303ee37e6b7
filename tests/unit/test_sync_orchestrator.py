from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from sheet_sync.db.store import InMemoryRegistrationStore, StoreError
from sheet_sync.logging.error_log import ErrorLogBuffer
from sheet_sync.models.config_models import ColumnConfig
from sheet_sync.models.sync_result import SyncResult
from sheet_sync.services.orchestrator import PartialSyncFailure, ProcessingError, sync_workshop
from sheet_sync.sheet.fetcher import (
    EmptyOrInvalidSheetError,
    FetchError,
    MalformedResponseError,
    SheetFetcher,
)

PROXY = "https://proxy.test/exec"
SHEET_URL = "https://docs.google.com/spreadsheets/d/abc123/edit#gid=0"


class _FailingStore(InMemoryRegistrationStore):
    """Fails the upsert for the given row indexes."""

    def __init__(self, failing_rows: set[int]) -> None:
        super().__init__()
        self.failing_rows = failing_rows
        self.attempted: list[int] = []

    def upsert_registration(self, workshop_id: str, row_index: int, fields: Any):
        self.attempted.append(row_index)
        if row_index in self.failing_rows:
            raise StoreError(f"duplicate key value violates constraint (row {row_index})")
        return super().upsert_registration(workshop_id, row_index, fields)


def _sync(fetcher, store, temp_workdir: Path, **kwargs) -> SyncResult:
    return sync_workshop(
        "W1",
        SHEET_URL,
        fetcher=fetcher,
        store=store,
        error_log=ErrorLogBuffer(temp_workdir / "logs"),
        show_progress=False,
        **kwargs,
    )


def test_scenario_sheet_upserts_two_rows(temp_workdir: Path, make_client, scenario_table) -> None:
    store = InMemoryRegistrationStore()
    fetcher = SheetFetcher(PROXY, client=make_client(table=scenario_table))

    result = _sync(fetcher, store, temp_workdir)

    assert result.ok
    assert result.workshop_id == "W1"
    assert result.succeeded == 2
    assert result.failed == 0
    assert result.total_rows == 2
    assert result.skipped_rows == 1
    assert result.elapsed_seconds >= 0

    regs = store.get_registrations("W1")
    assert [(r.raw_row_index, r.full_name, r.payment_confirmed, r.amount_rs) for r in regs] == [
        (2, "Asha", "paid", 1500.0),
        (3, "Ravi", "unpaid", 0.0),
    ]
    # 成功時はエラーログを作らない
    assert list((temp_workdir / "logs").iterdir()) == []


def test_resync_is_idempotent(temp_workdir: Path, make_client, scenario_table) -> None:
    store = InMemoryRegistrationStore()
    fetcher = SheetFetcher(PROXY, client=make_client(table=scenario_table))

    _sync(fetcher, store, temp_workdir)
    first = {r.raw_row_index: r.id for r in store.get_registrations("W1")}
    _sync(fetcher, store, temp_workdir)
    second = store.get_registrations("W1")

    assert len(second) == 2
    assert {r.raw_row_index: r.id for r in second} == first


def test_edited_row_updates_in_place(temp_workdir: Path, make_client, scenario_table) -> None:
    store = InMemoryRegistrationStore()
    _sync(SheetFetcher(PROXY, client=make_client(table=scenario_table)), store, temp_workdir)

    edited = [list(r) for r in scenario_table]
    edited[2] = ["Ravi", "9990002222", "Received", "1500"]
    _sync(SheetFetcher(PROXY, client=make_client(table=edited)), store, temp_workdir)

    regs = store.get_registrations("W1")
    assert len(regs) == 2
    assert (regs[1].payment_confirmed, regs[1].amount_rs) == ("paid", 1500.0)


def test_workshops_do_not_share_rows(temp_workdir: Path, make_client, scenario_table) -> None:
    store = InMemoryRegistrationStore()
    fetcher = SheetFetcher(PROXY, client=make_client(table=scenario_table))
    _sync(fetcher, store, temp_workdir)
    sync_workshop("W2", SHEET_URL, fetcher=fetcher, store=store, show_progress=False,
                  error_log=ErrorLogBuffer(temp_workdir / "logs"))

    assert len(store.get_registrations("W1")) == 2
    assert len(store.get_registrations("W2")) == 2


@pytest.mark.parametrize(
    ("kwargs", "exc_type", "error_type"),
    [
        ({"status": 502, "body": "Bad Gateway"}, FetchError, "FETCH_ERROR"),
        ({"body": "<html><body>Error</body></html>"}, MalformedResponseError, "MALFORMED_RESPONSE"),
        ({"body": "[]"}, EmptyOrInvalidSheetError, "EMPTY_OR_INVALID_SHEET"),
    ],
)
def test_source_errors_propagate_without_upserts(
    temp_workdir: Path, make_client, kwargs, exc_type, error_type
) -> None:
    store = MagicMock(spec=InMemoryRegistrationStore)
    fetcher = SheetFetcher(PROXY, client=make_client(**kwargs))

    with pytest.raises(exc_type):
        _sync(fetcher, store, temp_workdir)

    store.upsert_registration.assert_not_called()
    (log_file,) = list((temp_workdir / "logs").glob("sync-errors-*.log"))
    record = json.loads(log_file.read_text(encoding="utf-8").strip())
    assert record["workshop"] == "W1"
    assert record["row"] == -1
    assert record["error_type"] == error_type


def test_failed_row_does_not_stop_later_rows(temp_workdir: Path, make_client) -> None:
    table = [
        ["Name", "Phone", "Amount"],
        ["A", "1", "100"],
        ["B", "2", "200"],
        ["C", "3", "300"],
    ]
    store = _FailingStore({3})
    fetcher = SheetFetcher(PROXY, client=make_client(table=table))

    with pytest.raises(PartialSyncFailure) as exc_info:
        _sync(fetcher, store, temp_workdir)

    assert isinstance(exc_info.value, ProcessingError)
    result = exc_info.value.result
    assert store.attempted == [2, 3, 4]
    assert (result.succeeded, result.failed, result.total_rows) == (2, 1, 3)
    assert not result.ok
    (failure,) = result.failures
    assert failure.row_index == 3
    assert failure.error_type == "UPSERT_ERROR"
    assert "1 of 3 rows" in str(exc_info.value)
    # 成功済みの行はロールバックされない
    assert [r.raw_row_index for r in store.get_registrations("W1")] == [2, 4]

    (log_file,) = list((temp_workdir / "logs").glob("sync-errors-*.log"))
    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert set(record) == {"timestamp", "workshop", "row", "error_type", "message"}
    assert record["row"] == 3


def test_rows_are_upserted_in_sheet_order(temp_workdir: Path, make_client) -> None:
    table = [["Name"], ["A"], [""], ["B"], ["C"]]
    store = _FailingStore(set())
    _sync(SheetFetcher(PROXY, client=make_client(table=table)), store, temp_workdir)
    assert store.attempted == [2, 4, 5]


def test_column_overrides_are_applied(temp_workdir: Path, make_client) -> None:
    table = [
        ["Participant", "Mobile No", "Fees"],
        ["Asha", "999", "₹ 2,500.00"],
    ]
    store = InMemoryRegistrationStore()
    columns = ColumnConfig(
        variants={"name": ["participant"], "phone": ["mobile no"], "amount": ["fees"]},
        fallbacks={},
    )
    _sync(SheetFetcher(PROXY, client=make_client(table=table)), store, temp_workdir, columns=columns)

    (reg,) = store.get_registrations("W1")
    assert (reg.full_name, reg.phone, reg.amount_rs) == ("Asha", "999", 2500.0)


def test_header_only_table_syncs_nothing(temp_workdir: Path, make_client) -> None:
    table = [["Name", "Phone"], ["", ""]]
    store = InMemoryRegistrationStore()
    result = _sync(SheetFetcher(PROXY, client=make_client(table=table)), store, temp_workdir)
    assert (result.succeeded, result.failed, result.skipped_rows) == (0, 0, 1)
    assert store.get_registrations("W1") == []
