"""Rule-based insight generation over a user's transaction history.

Five independent rules, each producing zero or one :class:`Insight`, always
evaluated and stored in this order:

1. ``spending_trend``: latest two months of debit spend, when they differ by
   more than 20%.
2. ``top_category``: the all-time largest debit category.
3. ``subscription_creep``: monthly/annual load of detected recurring charges.
4. ``spending_spikes``: up to five debits above 3x the average debit.
5. ``top_merchants``: the five merchants with the most debit spend.

Text is fully rendered here (no templates downstream) and depends only on the
stored transactions, so regenerating without data changes yields identical
titles and descriptions.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.orm import Session

from db.models.finance import SiTransaction

from .categories import category_label
from .logging_setup import get_logger
from .models import Insight, InsightType, Severity, TransactionKind
from .normalizers import round_money
from .persistence import load_transactions, replace_insights
from .recurring import detect_recurring

_logger = get_logger("statement_insights.insights")

TREND_MIN_CHANGE_PCT = Decimal(20)
TREND_WARNING_PCT = Decimal(30)
TREND_POSITIVE_PCT = Decimal(-10)
TOP_CATEGORY_WARNING_SHARE = Decimal(50)
SUBSCRIPTION_WARNING_MONTHLY = Decimal(200)
SPIKE_MULTIPLIER = Decimal(3)
TOP_N = 5

_HUNDRED = Decimal(100)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _usd(d: Decimal) -> str:
    return f"${round_money(d):.2f}"


def _whole(d: Decimal) -> int:
    return int(d.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _num(d: Decimal) -> float:
    """JSON-friendly money value for insight payloads."""

    return float(round_money(d))


def _month(tx: SiTransaction) -> str:
    return tx.date.strftime("%Y-%m")


def _debits(rows: Sequence[SiTransaction]) -> list[SiTransaction]:
    return [r for r in rows if r.kind == TransactionKind.DEBIT]


def _totals_by(
    rows: Sequence[SiTransaction], key: Callable[[SiTransaction], str]
) -> list[tuple[str, Decimal, int]]:
    """``(key, total, count)`` sorted by total descending.

    The sort is stable over first-seen order, so ties resolve to whichever key
    appears first in storage order.
    """

    totals: dict[str, list[Any]] = {}
    for r in rows:
        entry = totals.setdefault(key(r), [Decimal(0), 0])
        entry[0] += r.amount
        entry[1] += 1
    ranked = [(k, v[0], v[1]) for k, v in totals.items()]
    ranked.sort(key=lambda item: item[1], reverse=True)
    return ranked


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def spending_trend(rows: Sequence[SiTransaction]) -> Insight | None:
    spent: dict[str, Decimal] = {}
    for r in rows:
        month = _month(r)
        spent.setdefault(month, Decimal(0))
        if r.kind == TransactionKind.DEBIT:
            spent[month] += r.amount
    if len(spent) < 2:
        return None

    current, previous = sorted(spent, reverse=True)[:2]
    cur_total, prev_total = spent[current], spent[previous]
    if prev_total == 0:
        # No baseline to compare against.
        return None

    change = (cur_total - prev_total) / prev_total * _HUNDRED
    if abs(change) <= TREND_MIN_CHANGE_PCT:
        return None

    direction = "increased" if change > 0 else "decreased"
    if change > TREND_WARNING_PCT:
        severity = Severity.WARNING
    elif change < TREND_POSITIVE_PCT:
        severity = Severity.POSITIVE
    else:
        severity = Severity.INFO

    return Insight(
        type=InsightType.SPENDING_TREND,
        title=f"Spending {direction} {_whole(abs(change))}%",
        description=(
            f"Your spending in {current} was {_usd(cur_total)} "
            f"compared to {_usd(prev_total)} in {previous}."
        ),
        severity=severity,
        data={
            "current": _num(cur_total),
            "previous": _num(prev_total),
            "change": _num(change),
            "current_month": current,
            "previous_month": previous,
        },
        period=current,
    )


def top_category(debits: Sequence[SiTransaction]) -> Insight | None:
    ranked = _totals_by(debits, lambda r: r.category)
    if not ranked:
        return None

    total_spent = sum((total for _, total, _ in ranked), Decimal(0))
    code, total, count = ranked[0]
    share = total / total_spent * _HUNDRED if total_spent else Decimal(0)
    label = category_label(code)

    return Insight(
        type=InsightType.TOP_CATEGORY,
        title=f"{_whole(share)}% of spending on {label}",
        description=(
            f"Your top spending category is {label} with {_usd(total)} "
            f"across {count} transactions."
        ),
        severity=Severity.WARNING if share > TOP_CATEGORY_WARNING_SHARE else Severity.INFO,
        data=[
            {"category": c, "label": category_label(c), "total": _num(t), "count": n}
            for c, t, n in ranked[:TOP_N]
        ],
    )


def subscription_creep(session: Session, user_id: str) -> Insight | None:
    recurring = detect_recurring(session, user_id)
    if not recurring:
        return None

    monthly = sum((g.amount for g in recurring), Decimal(0))
    yearly = monthly * 12
    return Insight(
        type=InsightType.SUBSCRIPTION_CREEP,
        title=f"{_usd(monthly)}/month in subscriptions",
        description=(
            f"You have {len(recurring)} detected recurring charges "
            f"totaling ~${_whole(yearly)} per year."
        ),
        severity=Severity.WARNING if monthly > SUBSCRIPTION_WARNING_MONTHLY else Severity.INFO,
        data=[g.as_payload() for g in recurring],
    )


def spending_spikes(debits: Sequence[SiTransaction]) -> Insight | None:
    if not debits:
        return None

    mean = sum((r.amount for r in debits), Decimal(0)) / len(debits)
    threshold = mean * SPIKE_MULTIPLIER
    largest = sorted(debits, key=lambda r: r.amount, reverse=True)
    spikes = [r for r in largest if r.amount > threshold][:TOP_N]
    if not spikes:
        return None

    n = len(spikes)
    return Insight(
        type=InsightType.SPENDING_SPIKES,
        title=f"{n} unusually large transaction{'s' if n > 1 else ''}",
        description=f"Found transactions significantly above your average of {_usd(mean)}.",
        severity=Severity.INFO,
        data=[
            {"merchant": r.merchant, "amount": _num(r.amount), "date": r.date.isoformat()}
            for r in spikes
        ],
    )


def top_merchants(debits: Sequence[SiTransaction]) -> Insight | None:
    ranked = _totals_by(debits, lambda r: r.merchant)[:TOP_N]
    if not ranked:
        return None

    merchant, total, count = ranked[0]
    return Insight(
        type=InsightType.TOP_MERCHANTS,
        title=f"Most spent at {merchant}",
        description=f"{_usd(total)} across {count} transactions.",
        severity=Severity.INFO,
        data=[{"merchant": m, "total": _num(t), "count": n} for m, t, n in ranked],
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def build_insights(session: Session, user_id: str) -> list[Insight]:
    """Evaluate every rule in order without touching stored insights.

    Recurring detection still runs (and flags transactions) as part of the
    subscription rule.
    """

    rows = load_transactions(session, user_id=user_id)
    debits = _debits(rows)
    candidates = (
        spending_trend(rows),
        top_category(debits),
        subscription_creep(session, user_id),
        spending_spikes(debits),
        top_merchants(debits),
    )
    return [c for c in candidates if c is not None]


def generate_insights(session: Session, user_id: str) -> list[Insight]:
    """Recompute a user's insights and replace the stored set with them.

    The delete/insert happens in ``session``; commit (or roll back) as one unit
    so no reader ever sees a half-cleared set.
    """

    insights = build_insights(session, user_id)
    replace_insights(session, user_id=user_id, insights=insights)
    _logger.info(
        "Generated %d insights for user %s: %s",
        len(insights),
        user_id,
        ", ".join(str(i.type) for i in insights) or "-",
    )
    return insights


__all__ = [
    "build_insights",
    "generate_insights",
    "spending_spikes",
    "spending_trend",
    "subscription_creep",
    "top_category",
    "top_merchants",
]
