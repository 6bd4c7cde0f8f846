"""Eligibility rule: turn a partner and its invoices into a Decision.

Pure functions, no I/O. The caller supplies ``now`` so results are
reproducible; it defaults to the current UTC time.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from datetime import datetime, time, timezone

from standing.constants import EXEMPT_CONTRACT_TYPES, PAID_STATE, ReasonCode
from standing.records import Decision, Invoice, Partner

NO_CONTRACT_OR_USER = Decision(allowed=False, reason=ReasonCode.NO_CONTRACT_OR_USER)
EXEMPT = Decision(allowed=True, reason=ReasonCode.EXEMPT)
NO_INVOICES = Decision(allowed=False, reason=ReasonCode.NO_INVOICES)
OVERDUE = Decision(allowed=False, reason=ReasonCode.OVERDUE)
CURRENT = Decision(allowed=True, reason=ReasonCode.CURRENT)


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def is_exempt(
    partner: Partner,
    exempt_types: Collection[str] = EXEMPT_CONTRACT_TYPES,
) -> bool:
    """Exact, case-sensitive match of the partner's contract type."""
    return partner.contract_type is not None and partner.contract_type in exempt_types


def overdue_invoices(
    invoices: Iterable[Invoice], now: datetime | None = None
) -> list[Invoice]:
    """Unpaid invoices past their due date that still carry a balance.

    A due date counts from midnight UTC of that day. Invoices without a
    due date and invoices with a zero residual never count.
    """
    now = _utc(now)
    return [
        inv
        for inv in invoices
        if inv.state != PAID_STATE
        and inv.due_date is not None
        and datetime.combine(inv.due_date, time.min, tzinfo=timezone.utc) < now
        and inv.residual_amount > 0
    ]


def evaluate(
    partner: Partner | None,
    invoices: Sequence[Invoice],
    now: datetime | None = None,
    exempt_types: Collection[str] = EXEMPT_CONTRACT_TYPES,
) -> Decision:
    """Decide whether ``partner`` may access the service."""
    if partner is None:
        return NO_CONTRACT_OR_USER
    if is_exempt(partner, exempt_types):
        return EXEMPT
    if not invoices:
        return NO_INVOICES
    if overdue_invoices(invoices, now):
        return OVERDUE
    return CURRENT
