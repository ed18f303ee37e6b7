from __future__ import annotations

import math
import re
from typing import Any

from ..models.registration import PaymentStatus

"""Per-cell normalization for registration sheet values.

None of these functions raise: every input has a defined fallback output
(empty text -> None, unparseable amount -> 0.0, unclassifiable payment status
-> original text with paid=False).
"""

__all__ = [
    "PAID",
    "UNPAID",
    "classify_payment_status",
    "coerce_amount",
    "normalize_text",
]

PAID = "paid"
UNPAID = "unpaid"

_STATUS_STRIP = re.compile(r"[^a-z0-9 ]+")
_AMOUNT_STRIP = re.compile(r"[^\d.\-]")
_ABBREV_DOT = re.compile(r"(?<=[A-Za-z])\.")

# Negative indicators are checked first so that "not paid" / "unpaid" never
# fall through to the "paid" positive pattern.
_NEGATIVE = re.compile(
    r"unpaid|not\s*paid|pending|due|outstanding|\bno\b|\bfalse\b|\b0\b"
    r"|not receiving|no answer|postponed"
)
_POSITIVE = re.compile(
    r"paid|\byes\b|\by\b|\btrue\b|\b1\b|done|complete|success|confirm"
    r"|received|recieved|cleared|settled"
)


def normalize_text(value: Any) -> str | None:
    """str() + strip; None and blank cells become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def classify_payment_status(value: Any) -> PaymentStatus:
    """Classify a free-text payment cell as paid / unpaid / pass-through.

    >>> classify_payment_status("Yes")
    PaymentStatus(label='paid', paid=True)
    >>> classify_payment_status("no answer!!")
    PaymentStatus(label='unpaid', paid=False)
    >>> classify_payment_status("Call back Monday")
    PaymentStatus(label='Call back Monday', paid=False)
    """
    text = normalize_text(value)
    if text is None:
        return PaymentStatus(label=None, paid=False)

    plain = _STATUS_STRIP.sub(" ", text.lower())
    if _NEGATIVE.search(plain):
        return PaymentStatus(label=UNPAID, paid=False)
    if _POSITIVE.search(plain):
        return PaymentStatus(label=PAID, paid=True)
    return PaymentStatus(label=text, paid=False)


def coerce_amount(value: Any) -> float:
    """Liberal currency parsing: "₹ 2,500.00" -> 2500.0, "abc" -> 0.0."""
    text = normalize_text(value)
    if text is None:
        return 0.0
    # "Rs. 500": a dot right after a letter is an abbreviation, not a decimal point
    cleaned = _AMOUNT_STRIP.sub("", _ABBREV_DOT.sub("", text))
    try:
        amount = float(cleaned)
    except ValueError:
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount
