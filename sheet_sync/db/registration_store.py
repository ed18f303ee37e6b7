from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..models.records import FinancialSnapshot, OtherCost, Registration, Workshop
from .store import StoreError

"""PostgreSQL registration store (psycopg2 cursor).

upsert_registration() relies on the unique constraint
registrations (workshop_id, raw_row_index):

    INSERT ... ON CONFLICT (workshop_id, raw_row_index) DO UPDATE SET ...

Each upsert runs inside its own SAVEPOINT so that one failing row does not
abort the surrounding transaction; earlier rows stay in place and the caller
commits at the end of the sync.
"""

__all__ = [
    "PostgresRegistrationStore",
]

UPSERT_COLUMNS = (
    "full_name",
    "phone",
    "email",
    "notes",
    "payment_confirmed",
    "amount_rs",
)

_UPSERT_SQL = (
    "INSERT INTO registrations (workshop_id, raw_row_index, "
    + ", ".join(UPSERT_COLUMNS)
    + ") VALUES (%s, %s, "
    + ", ".join(["%s"] * len(UPSERT_COLUMNS))
    + ") ON CONFLICT (workshop_id, raw_row_index) DO UPDATE SET "
    + ", ".join(f"{c} = EXCLUDED.{c}" for c in UPSERT_COLUMNS)
    + " RETURNING *"
)

_SAVEPOINT = "registration_upsert"


class PostgresRegistrationStore:
    """RegistrationStore backed by a psycopg2 cursor (transaction owned by caller)."""

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def _rows_as_dicts(self, rows: list[Any]) -> list[dict[str, Any]]:
        if not rows:
            return []
        if isinstance(rows[0], Mapping):
            return [dict(r) for r in rows]
        names = [d[0] for d in self.cursor.description]
        return [dict(zip(names, r, strict=False)) for r in rows]

    def _fetch(self, sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        try:
            self.cursor.execute(sql, params)
            return self._rows_as_dicts(self.cursor.fetchall())
        except Exception as e:
            raise StoreError(str(e)) from e

    def upsert_registration(
        self, workshop_id: str, row_index: int, fields: Mapping[str, Any]
    ) -> Registration:
        params = (workshop_id, row_index, *(fields.get(c) for c in UPSERT_COLUMNS))
        try:
            self.cursor.execute(f"SAVEPOINT {_SAVEPOINT}")
        except Exception as e:
            raise StoreError(f"could not open savepoint: {e}") from e
        try:
            self.cursor.execute(_UPSERT_SQL, params)
            returned = self._rows_as_dicts([self.cursor.fetchone()])
        except Exception as e:
            try:
                self.cursor.execute(f"ROLLBACK TO SAVEPOINT {_SAVEPOINT}")
            except Exception as rollback_e:  # pragma: no cover
                raise StoreError(f"{e} (rollback to savepoint failed: {rollback_e})") from e
            raise StoreError(str(e)) from e
        try:
            self.cursor.execute(f"RELEASE SAVEPOINT {_SAVEPOINT}")
        except Exception as e:
            raise StoreError(f"could not release savepoint: {e}") from e
        return Registration.from_row(returned[0])

    def get_workshop(self, workshop_id: str) -> Workshop | None:
        rows = self._fetch("SELECT * FROM workshops WHERE id = %s", (workshop_id,))
        return Workshop.from_row(rows[0]) if rows else None

    def get_registrations(self, workshop_id: str) -> list[Registration]:
        rows = self._fetch(
            "SELECT * FROM registrations WHERE workshop_id = %s ORDER BY raw_row_index ASC",
            (workshop_id,),
        )
        return [Registration.from_row(r) for r in rows]

    def get_financial_snapshots(self, workshop_id: str) -> list[FinancialSnapshot]:
        rows = self._fetch(
            "SELECT * FROM financial_snapshots WHERE workshop_id = %s ORDER BY created_at DESC",
            (workshop_id,),
        )
        return [FinancialSnapshot.from_row(r) for r in rows]

    def get_other_costs(self, workshop_id: str) -> list[OtherCost]:
        rows = self._fetch(
            "SELECT * FROM other_costs WHERE workshop_id = %s ORDER BY created_at ASC",
            (workshop_id,),
        )
        return [OtherCost.from_row(r) for r in rows]

    def create_financial_snapshot(self, snapshot: FinancialSnapshot) -> FinancialSnapshot:
        rows = self._fetch(
            "INSERT INTO financial_snapshots "
            "(workshop_id, revenue, meta_spend, other_costs_total, profit, profit_margin) "
            "VALUES (%s, %s, %s, %s, %s, %s) RETURNING *",
            (
                snapshot.workshop_id,
                snapshot.revenue,
                snapshot.meta_spend,
                snapshot.other_costs_total,
                snapshot.profit,
                snapshot.profit_margin,
            ),
        )
        return FinancialSnapshot.from_row(rows[0])
