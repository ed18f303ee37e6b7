from __future__ import annotations

from dataclasses import dataclass

"""ColumnMap model for the registration sheet sync.

ColumnMap is built once per fetched table from its header row and reused for
every data row. Each field holds a zero-based column index, or UNRESOLVED
when neither a header variant nor a positional fallback applies.
"""

__all__ = [
    "ColumnMap",
    "FIELDS",
    "UNRESOLVED",
]

UNRESOLVED = -1

# 解決順序 = 出力フィールド順
FIELDS: tuple[str, ...] = (
    "name",
    "phone",
    "email",
    "notes",
    "payment_status",
    "amount",
)


@dataclass(frozen=True)
class ColumnMap:
    """Semantic field -> column index mapping for one sheet."""
    name: int = UNRESOLVED
    phone: int = UNRESOLVED
    email: int = UNRESOLVED
    notes: int = UNRESOLVED
    payment_status: int = UNRESOLVED
    amount: int = UNRESOLVED

    def index_of(self, field: str) -> int:
        return getattr(self, field)

    def as_dict(self) -> dict[str, int]:
        return {f: self.index_of(f) for f in FIELDS}
