"""Recurring-charge (subscription) detection.

Heuristic, recomputed from scratch on every call:

1. take the user's debits ordered by merchant then date and group them by
   lower-cased merchant; groups with fewer than two members are ignored;
2. amount consistency: every member must sit within 10% (relative) of the
   group mean, so a single outlier disqualifies the whole merchant;
3. periodicity: the *average* gap between consecutive dates must fall in
   [20, 40] days. Gaps are averaged rather than checked pairwise, so an
   irregular series that happens to average ~30 days also qualifies.

Members of qualifying groups get ``is_recurring = True``. By default flags are
never cleared, so a transaction flagged by an earlier run stays flagged even if
its merchant stops qualifying; pass ``reset_stale=True`` (or set
``SI_RECURRING_RESET_STALE``) to clear a user's flags before recomputing.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy.orm import Session

from db.models.finance import SiTransaction

from .logging_setup import get_logger
from .models import Category, Frequency, RecurringGroup
from .normalizers import round_money
from .persistence import clear_recurring_flags, load_debits_by_merchant, mark_recurring
from .settings import load_settings

_logger = get_logger("statement_insights.recurring")

MIN_OCCURRENCES = 2
MAX_RELATIVE_DEVIATION = Decimal("0.10")
MONTHLY_GAP_DAYS = (20, 40)


def _group_by_merchant(rows: Sequence[SiTransaction]) -> dict[str, list[SiTransaction]]:
    groups: dict[str, list[SiTransaction]] = {}
    for row in rows:
        groups.setdefault(row.merchant.lower(), []).append(row)
    return groups


def is_amount_consistent(amounts: Sequence[Decimal]) -> bool:
    """True when every amount is within 10% of the mean (zero mean fails)."""

    mean = sum(amounts, Decimal(0)) / len(amounts)
    if mean == 0:
        return False
    return all(abs(a - mean) / mean < MAX_RELATIVE_DEVIATION for a in amounts)


def average_gap_days(rows: Sequence[SiTransaction]) -> float:
    dates = sorted(r.date for r in rows)
    gaps = [(b - a).days for a, b in zip(dates, dates[1:], strict=False)]
    return sum(gaps) / len(gaps)


def _evaluate_group(members: Sequence[SiTransaction]) -> RecurringGroup | None:
    if len(members) < MIN_OCCURRENCES:
        return None
    amounts = [m.amount for m in members]
    if not is_amount_consistent(amounts):
        return None
    low, high = MONTHLY_GAP_DAYS
    if not low <= average_gap_days(members) <= high:
        return None
    mean = sum(amounts, Decimal(0)) / len(amounts)
    # First in case-sensitive merchant order ("HULU" before "Hulu"), not the earliest charge
    first = members[0]
    return RecurringGroup(
        merchant=first.merchant,
        amount=round_money(mean),
        category=Category(first.category),
        count=len(members),
        frequency=Frequency.MONTHLY,
    )


def detect_recurring(
    session: Session,
    user_id: str,
    *,
    reset_stale: bool | None = None,
) -> list[RecurringGroup]:
    """Detect a user's recurring charges and flag their transactions.

    Returns one :class:`RecurringGroup` per qualifying merchant, in merchant
    order. Safe to call repeatedly; the caller commits.
    """

    if reset_stale is None:
        reset_stale = load_settings().recurring_reset_stale
    if reset_stale:
        clear_recurring_flags(session, user_id=user_id)

    groups = _group_by_merchant(load_debits_by_merchant(session, user_id=user_id))

    found: list[RecurringGroup] = []
    flagged = 0
    for members in groups.values():
        group = _evaluate_group(members)
        if group is None:
            continue
        flagged += mark_recurring(session, transaction_ids=[m.id for m in members])
        found.append(group)

    _logger.info(
        "Recurring detection for user %s: merchants=%d recurring=%d flagged=%d",
        user_id,
        len(groups),
        len(found),
        flagged,
    )
    return found


__all__ = ["average_gap_days", "detect_recurring", "is_amount_consistent"]
