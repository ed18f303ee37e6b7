from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""NormalizedRegistration and PaymentStatus models.

NormalizedRegistration is the output unit of the row parser: one record per
non-blank data row of the sheet. row_index is the row's 1-based position in
the source table counting the header (first data row = 2) and is the stable
upsert key together with the workshop id.
"""

__all__ = [
    "NormalizedRegistration",
    "PaymentStatus",
]


@dataclass(frozen=True)
class PaymentStatus:
    """Result of free-text payment status classification.

    label is "paid", "unpaid", the original trimmed text when it could not be
    classified, or None when the cell was empty.
    """
    label: str | None
    paid: bool


@dataclass(frozen=True)
class NormalizedRegistration:
    row_index: int  # 1-based sheet row (header = 1)
    full_name: str | None
    phone: str | None
    email: str | None
    notes: str | None
    payment_confirmed: str | None
    amount_rs: float = 0.0

    def to_fields(self) -> dict[str, Any]:
        """Column values written by the storage upsert (keys excluded)."""
        return {
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "notes": self.notes,
            "payment_confirmed": self.payment_confirmed,
            "amount_rs": self.amount_rs,
        }
