from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from ..models.column_map import UNRESOLVED, ColumnMap
from ..models.registration import NormalizedRegistration
from .cells import classify_payment_status, coerce_amount, normalize_text
from .columns import resolve_columns

"""Row parser: RawTable + ColumnMap -> NormalizedRegistration sequence.

Row 0 is the header, rows 1.. are data. Fully blank rows (trailing rows of a
form export) are skipped without producing a record. row_index is the 1-based
position in the source table including the header, so the first data row
yields row_index=2 and the value does not shift when blank rows are skipped.
"""

__all__ = [
    "RegistrationRows",
    "parse_sheet",
    "parse_table",
]

RawTable = Sequence[Sequence[Any]]


def _cell(row: Sequence[Any], idx: int) -> Any:
    if idx == UNRESOLVED or idx < 0 or idx >= len(row):
        return None
    return row[idx]


def _is_blank(row: Any) -> bool:
    if not isinstance(row, (list, tuple)) or len(row) == 0:
        return True
    return all(normalize_text(cell) is None for cell in row)


def _build_registration(
    row: Sequence[Any], table_index: int, columns: ColumnMap
) -> NormalizedRegistration:
    status = classify_payment_status(_cell(row, columns.payment_status))
    return NormalizedRegistration(
        row_index=table_index + 1,
        full_name=normalize_text(_cell(row, columns.name)),
        phone=normalize_text(_cell(row, columns.phone)),
        email=normalize_text(_cell(row, columns.email)),
        notes=normalize_text(_cell(row, columns.notes)),
        payment_confirmed=status.label,
        amount_rs=coerce_amount(_cell(row, columns.amount)),
    )


class RegistrationRows:
    """Lazy, restartable view over the data rows of one table.

    Each iteration re-parses the table from scratch; nothing is cached
    between iterations.
    """

    def __init__(self, table: RawTable, columns: ColumnMap) -> None:
        self.table = table
        self.columns = columns

    def __iter__(self) -> Iterator[NormalizedRegistration]:
        for i in range(1, len(self.table)):
            row = self.table[i]
            if _is_blank(row):
                continue
            yield _build_registration(row, i, self.columns)

    @property
    def data_rows(self) -> int:
        return max(len(self.table) - 1, 0)

    @property
    def skipped_rows(self) -> int:
        """Number of blank data rows that produce no record."""
        return sum(1 for i in range(1, len(self.table)) if _is_blank(self.table[i]))


def parse_table(table: RawTable, columns: ColumnMap) -> RegistrationRows:
    return RegistrationRows(table, columns)


def parse_sheet(
    table: RawTable,
    variants: Mapping[str, Sequence[str]] | None = None,
    fallbacks: Mapping[str, int] | None = None,
) -> RegistrationRows:
    """Resolve columns from the header row and parse the remaining rows."""
    header = table[0] if table and isinstance(table[0], (list, tuple)) else []
    columns = resolve_columns(header, variants, fallbacks)
    return parse_table(table, columns)
