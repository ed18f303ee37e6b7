from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from ..models.records import FinancialSnapshot, OtherCost, Registration, Workshop

"""Registration store interface and the dict-backed implementation.

The sync orchestrator only relies on upsert_registration() being idempotent on
(workshop_id, row_index). The read accessors are used by the caller around a
sync (sheet URL lookup, financial report).
"""

__all__ = [
    "InMemoryRegistrationStore",
    "RegistrationStore",
    "StoreError",
]


class StoreError(Exception):
    """A storage operation failed."""


@runtime_checkable
class RegistrationStore(Protocol):
    """Storage collaborator consumed by the sync pipeline."""

    def upsert_registration(
        self, workshop_id: str, row_index: int, fields: Mapping[str, Any]
    ) -> Registration: ...

    def get_workshop(self, workshop_id: str) -> Workshop | None: ...

    def get_registrations(self, workshop_id: str) -> list[Registration]: ...

    def get_financial_snapshots(self, workshop_id: str) -> list[FinancialSnapshot]: ...

    def get_other_costs(self, workshop_id: str) -> list[OtherCost]: ...

    def create_financial_snapshot(self, snapshot: FinancialSnapshot) -> FinancialSnapshot: ...


_REGISTRATION_FIELDS = frozenset(
    {"full_name", "phone", "email", "notes", "payment_confirmed", "amount_rs"}
)


class InMemoryRegistrationStore:
    """Dict-backed RegistrationStore for tests and the CLI mock mode."""

    def __init__(self) -> None:
        self._workshops: dict[str, Workshop] = {}
        self._registrations: dict[tuple[str, int], Registration] = {}
        self._snapshots: list[FinancialSnapshot] = []
        self._other_costs: list[OtherCost] = []

    def add_workshop(self, workshop: Workshop) -> None:
        self._workshops[workshop.id] = workshop

    def add_other_cost(self, cost: OtherCost) -> None:
        self._other_costs.append(cost)

    def upsert_registration(
        self, workshop_id: str, row_index: int, fields: Mapping[str, Any]
    ) -> Registration:
        unknown = set(fields) - _REGISTRATION_FIELDS
        if unknown:
            raise StoreError(f"unknown registration columns: {sorted(unknown)}")
        key = (workshop_id, row_index)
        existing = self._registrations.get(key)
        if existing is None:
            record = Registration(
                workshop_id=workshop_id,
                raw_row_index=row_index,
                id=str(uuid.uuid4()),
                created_at=datetime.now(UTC),
                **fields,
            )
        else:
            # 既存行は id / created_at を維持して上書き
            record = replace(existing, **fields)
        self._registrations[key] = record
        return record

    def get_workshop(self, workshop_id: str) -> Workshop | None:
        return self._workshops.get(workshop_id)

    def get_registrations(self, workshop_id: str) -> list[Registration]:
        rows = [r for (wid, _), r in self._registrations.items() if wid == workshop_id]
        return sorted(rows, key=lambda r: r.raw_row_index or 0)

    def get_financial_snapshots(self, workshop_id: str) -> list[FinancialSnapshot]:
        rows = [s for s in self._snapshots if s.workshop_id == workshop_id]
        return list(reversed(rows))

    def get_other_costs(self, workshop_id: str) -> list[OtherCost]:
        return [c for c in self._other_costs if c.workshop_id == workshop_id]

    def create_financial_snapshot(self, snapshot: FinancialSnapshot) -> FinancialSnapshot:
        stored = replace(snapshot, id=str(uuid.uuid4()), created_at=datetime.now(UTC))
        self._snapshots.append(stored)
        return stored
