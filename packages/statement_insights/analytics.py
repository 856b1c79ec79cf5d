"""Read-only dashboard aggregations.

These back the dashboard's overview cards, monthly chart, category donut,
merchant list and subscription panel. Values are plain dicts of JSON-friendly
types so an API layer can return them as-is.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.finance import SiStatement, SiTransaction

from .categories import CATEGORY_COLORS, category_label
from .models import Category, TransactionKind
from .normalizers import round_money
from .persistence import load_transactions

MAX_MERCHANT_LIMIT = 50


def _money(d: Decimal) -> float:
    return float(round_money(d))


def overview(session: Session, user_id: str) -> dict[str, Any]:
    rows = load_transactions(session, user_id=user_id)
    debits = [r.amount for r in rows if r.kind == TransactionKind.DEBIT]
    credits = [r.amount for r in rows if r.kind == TransactionKind.CREDIT]
    statement_count = session.execute(
        select(func.count()).select_from(SiStatement).where(SiStatement.user_id == user_id)
    ).scalar_one()
    return {
        "total_spent": _money(sum(debits, Decimal(0))),
        "total_credits": _money(sum(credits, Decimal(0))),
        "total_transactions": len(rows),
        "avg_transaction": _money(sum(debits, Decimal(0)) / len(debits)) if debits else 0.0,
        "statement_count": statement_count,
        "date_range": {
            "earliest": rows[0].date.isoformat() if rows else None,
            "latest": rows[-1].date.isoformat() if rows else None,
        },
    }


def monthly_totals(session: Session, user_id: str) -> list[dict[str, Any]]:
    """Per-month spend/credits/count, oldest month first."""

    months: dict[str, dict[str, Any]] = {}
    for r in load_transactions(session, user_id=user_id):
        key = r.date.strftime("%Y-%m")
        m = months.setdefault(key, {"spent": Decimal(0), "credits": Decimal(0), "transactions": 0})
        if r.kind == TransactionKind.DEBIT:
            m["spent"] += r.amount
        else:
            m["credits"] += r.amount
        m["transactions"] += 1
    return [
        {
            "month": key,
            "spent": _money(m["spent"]),
            "credits": _money(m["credits"]),
            "transactions": m["transactions"],
        }
        for key, m in sorted(months.items())
    ]


def category_breakdown(
    session: Session, user_id: str, *, month: str | None = None
) -> dict[str, Any]:
    """Debit spend per category, optionally limited to one ``YYYY-MM`` month."""

    totals: dict[str, list[Any]] = {}
    for r in load_transactions(session, user_id=user_id, kind=TransactionKind.DEBIT):
        if month is not None and r.date.strftime("%Y-%m") != month:
            continue
        entry = totals.setdefault(r.category, [Decimal(0), 0])
        entry[0] += r.amount
        entry[1] += 1

    grand_total = sum((t for t, _ in totals.values()), Decimal(0))
    ranked = sorted(totals.items(), key=lambda kv: kv[1][0], reverse=True)
    categories = []
    for code, (total, count) in ranked:
        pct = Decimal(0)
        if grand_total:
            pct = (total / grand_total * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        categories.append(
            {
                "category": code,
                "total": _money(total),
                "count": count,
                "percentage": float(pct),
                "color": CATEGORY_COLORS[Category(code)],
                "label": category_label(code),
            }
        )
    return {"categories": categories, "total": _money(grand_total)}


def top_merchants(session: Session, user_id: str, *, limit: int = 10) -> list[dict[str, Any]]:
    limit = max(1, min(limit, MAX_MERCHANT_LIMIT))
    merchants: dict[str, dict[str, Any]] = {}
    for r in load_transactions(session, user_id=user_id, kind=TransactionKind.DEBIT):
        m = merchants.setdefault(
            r.merchant,
            {"merchant": r.merchant, "total": Decimal(0), "count": 0, "category": r.category},
        )
        m["total"] += r.amount
        m["count"] += 1
    ranked = sorted(merchants.values(), key=lambda m: m["total"], reverse=True)[:limit]
    return [{**m, "total": _money(m["total"])} for m in ranked]


def recurring_summary(session: Session, user_id: str) -> dict[str, Any]:
    """Merchants currently flagged recurring, with monthly and yearly load."""

    groups: dict[str, list[SiTransaction]] = {}
    for r in load_transactions(session, user_id=user_id, kind=TransactionKind.DEBIT):
        if r.is_recurring:
            groups.setdefault(r.merchant, []).append(r)

    subscriptions = []
    monthly_total = Decimal(0)
    for merchant, members in groups.items():
        avg = sum((m.amount for m in members), Decimal(0)) / len(members)
        monthly_total += avg
        subscriptions.append(
            {
                "merchant": merchant,
                "avg_amount": _money(avg),
                "occurrences": len(members),
                "category": members[0].category,
                "first_seen": members[0].date.isoformat(),
                "last_seen": members[-1].date.isoformat(),
            }
        )
    subscriptions.sort(key=lambda s: s["avg_amount"], reverse=True)
    return {
        "subscriptions": subscriptions,
        "monthly_total": _money(monthly_total),
        "yearly_estimate": _money(monthly_total * 12),
    }


__all__ = [
    "category_breakdown",
    "monthly_totals",
    "overview",
    "recurring_summary",
    "top_merchants",
]
