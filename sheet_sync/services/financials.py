from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from ..models.records import FinancialSnapshot, OtherCost, Registration
from ..sheet.cells import UNPAID, classify_payment_status

"""Workshop status counts and margin, computed from stored registrations.

The caller runs these after a sync to report where the workshop stands.
Paid-ness is decided by the same classifier the sync uses, so stored labels
("paid"/"unpaid") and legacy free text ("Yes") are treated alike.
"""

__all__ = [
    "FinancialSummary",
    "RegistrationStats",
    "compute_financials",
    "compute_registration_stats",
    "format_currency",
    "is_paid",
]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def is_paid(payment_confirmed: str | None) -> bool:
    return classify_payment_status(payment_confirmed).paid


@dataclass(frozen=True)
class RegistrationStats:
    registered: int
    paid: int
    unpaid: int  # explicit "unpaid" label
    pending: int  # empty or unclassified status
    not_paid: int
    paid_percentage: int
    total_paid_amount: float
    average_payment: int


@dataclass(frozen=True)
class FinancialSummary:
    revenue: float
    meta_spend: float
    other_costs_total: float
    total_costs: float
    profit: float
    profit_margin: float  # percent of revenue, 0 when revenue is 0

    def to_snapshot(self, workshop_id: str) -> FinancialSnapshot:
        return FinancialSnapshot(
            workshop_id=workshop_id,
            revenue=self.revenue,
            meta_spend=self.meta_spend,
            other_costs_total=self.other_costs_total,
            profit=self.profit,
            profit_margin=self.profit_margin,
        )


def compute_registration_stats(registrations: Iterable[Registration]) -> RegistrationStats:
    regs = list(registrations)
    total = len(regs)
    paid_regs = [r for r in regs if is_paid(r.payment_confirmed)]
    paid = len(paid_regs)
    unpaid = sum(
        1 for r in regs if classify_payment_status(r.payment_confirmed).label == UNPAID
    )
    total_paid_amount = sum(r.amount_rs or 0.0 for r in paid_regs)
    return RegistrationStats(
        registered=total,
        paid=paid,
        unpaid=unpaid,
        pending=total - paid - unpaid,
        not_paid=total - paid,
        paid_percentage=_round_half_up(paid / total * 100) if total else 0,
        total_paid_amount=total_paid_amount,
        average_payment=_round_half_up(total_paid_amount / paid) if paid else 0,
    )


def compute_financials(
    registrations: Iterable[Registration],
    meta_spend: float = 0.0,
    other_costs: Iterable[OtherCost] = (),
) -> FinancialSummary:
    """Revenue is the sum of amount_rs over paid registrations."""
    revenue = sum(r.amount_rs or 0.0 for r in registrations if is_paid(r.payment_confirmed))
    other_costs_total = sum(c.amount or 0.0 for c in other_costs)
    total_costs = meta_spend + other_costs_total
    profit = revenue - total_costs
    margin = (profit / revenue) * 100 if revenue > 0 else 0.0
    return FinancialSummary(
        revenue=revenue,
        meta_spend=meta_spend,
        other_costs_total=other_costs_total,
        total_costs=total_costs,
        profit=profit,
        profit_margin=margin,
    )


def format_currency(amount: float) -> str:
    """Whole rupees with Indian digit grouping: 150000 -> "Rs 1,50,000"."""
    rounded = _round_half_up(abs(amount))
    digits = str(rounded)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups) + "," + tail
    sign = "-" if amount < 0 and rounded else ""
    return f"{sign}Rs {digits}"
