from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from ..models.column_map import FIELDS, UNRESOLVED, ColumnMap

"""Column resolver: header row -> ColumnMap.

Headers in the registration sheet are hand-edited (colon suffixes, "recieved"
misspellings, renamed columns). Each field is matched against an ordered list
of header variants; when none matches, a positional fallback for the known
sheet template is used. The amount column falls back to the last column,
since the form export appends it at the end.
"""

__all__ = [
    "DEFAULT_FALLBACKS",
    "DEFAULT_VARIANTS",
    "normalize_header",
    "resolve_columns",
]

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

DEFAULT_VARIANTS: dict[str, tuple[str, ...]] = {
    "name": ("name", "name:", "your name", "participant name", "full name"),
    "phone": ("phone number", "phone", "mobile", "contact", "whatsapp"),
    "email": ("email", "email:", "email address", "email id"),
    "notes": ("notes",),
    "payment_status": (
        "payment recieved?",
        "payment received?",
        "payment recieved",
        "payment received",
        "payment status",
        "paid",
    ),
    "amount": (
        "payment recieved in numbers",
        "payment received in numbers",
        "amount in rs",
        "amount",
        "payment amount",
        "paid amount",
        "amount paid",
        "total",
        "total amount",
    ),
}

# 0-based positions in the form-export template:
# C "Name:", D "Email:", E "Phone number:", J "Notes", K "Payment Recieved?"
DEFAULT_FALLBACKS: dict[str, int] = {
    "name": 2,
    "email": 3,
    "phone": 4,
    "notes": 9,
    "payment_status": 10,
}


def normalize_header(value: Any) -> str:
    """Lowercase, collapse non-alphanumeric runs to one space, trim."""
    if value is None:
        return ""
    return _NON_ALNUM.sub(" ", str(value).lower()).strip()


def _find_column(headers: list[str], variants: Sequence[str]) -> int:
    for variant in variants:
        target = normalize_header(variant)
        if not target:
            continue
        if target in headers:
            return headers.index(target)
    return UNRESOLVED


def resolve_columns(
    header_row: Sequence[Any],
    variants: Mapping[str, Sequence[str]] | None = None,
    fallbacks: Mapping[str, int] | None = None,
) -> ColumnMap:
    """Resolve every semantic field to a column index.

    Parameters
    ----------
    header_row: raw header cells (row 0 of the sheet)
    variants: field -> header names in priority order (defaults to DEFAULT_VARIANTS)
    fallbacks: field -> 0-based position used when no variant matches
        (defaults to DEFAULT_FALLBACKS). "amount" ignores this and falls
        back to the last column.

    Never raises: a field with neither a match nor an in-range fallback
    resolves to UNRESOLVED.
    """
    variants = DEFAULT_VARIANTS if variants is None else variants
    fallbacks = DEFAULT_FALLBACKS if fallbacks is None else fallbacks
    headers = [normalize_header(h) for h in header_row]

    resolved: dict[str, int] = {}
    for field in FIELDS:
        idx = _find_column(headers, variants.get(field, ()))
        if idx == UNRESOLVED:
            if field == "amount":
                idx = len(headers) - 1 if headers else UNRESOLVED
            else:
                fallback = fallbacks.get(field, UNRESOLVED)
                idx = fallback if 0 <= fallback < len(headers) else UNRESOLVED
        resolved[field] = idx
    return ColumnMap(**resolved)
