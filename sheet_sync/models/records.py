from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

"""Stored record models returned by the registration store.

These mirror the hosted tables (workshops, registrations, financial_snapshots,
other_costs). The sync pipeline only writes registrations; the other records
are read by the caller before/after a sync (sheet URL lookup, financial report).
"""

__all__ = [
    "FinancialSnapshot",
    "OtherCost",
    "Registration",
    "Workshop",
]


def _num(value: Any) -> float:
    # numeric 列は Decimal で返るため float へ揃える
    if value is None:
        return 0.0
    return float(value)


@dataclass(frozen=True)
class Workshop:
    id: str
    title: str
    date: date | str | None = None
    ticket_price: float = 0.0
    sheet_url: str | None = None
    status: str = "active"
    user_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Workshop:
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            date=row.get("date"),
            ticket_price=_num(row.get("ticket_price")),
            sheet_url=row.get("sheet_url"),
            status=row.get("status") or "active",
            user_id=row.get("user_id"),
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class Registration:
    workshop_id: str
    raw_row_index: int | None
    full_name: str | None = None
    phone: str | None = None
    email: str | None = None
    notes: str | None = None
    payment_confirmed: str | None = None
    amount_rs: float = 0.0
    id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Registration:
        return cls(
            workshop_id=str(row["workshop_id"]),
            raw_row_index=row.get("raw_row_index"),
            full_name=row.get("full_name"),
            phone=row.get("phone"),
            email=row.get("email"),
            notes=row.get("notes"),
            payment_confirmed=row.get("payment_confirmed"),
            amount_rs=_num(row.get("amount_rs")),
            id=str(row["id"]) if row.get("id") is not None else None,
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class FinancialSnapshot:
    workshop_id: str
    revenue: float
    meta_spend: float
    other_costs_total: float
    profit: float
    profit_margin: float
    id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> FinancialSnapshot:
        return cls(
            workshop_id=str(row["workshop_id"]),
            revenue=_num(row.get("revenue")),
            meta_spend=_num(row.get("meta_spend")),
            other_costs_total=_num(row.get("other_costs_total")),
            profit=_num(row.get("profit")),
            profit_margin=_num(row.get("profit_margin")),
            id=str(row["id"]) if row.get("id") is not None else None,
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class OtherCost:
    workshop_id: str
    label: str
    amount: float
    id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> OtherCost:
        return cls(
            workshop_id=str(row["workshop_id"]),
            label=row.get("label") or "",
            amount=_num(row.get("amount")),
            id=str(row["id"]) if row.get("id") is not None else None,
            created_at=row.get("created_at"),
        )
