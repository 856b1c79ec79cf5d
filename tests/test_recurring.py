from datetime import date, timedelta
from decimal import Decimal

from db.client import session_scope
from db.models.finance import SiTransaction
from sqlalchemy import select

from statement_insights.models import Category, Frequency, RecurringGroup
from statement_insights.recurring import (
    average_gap_days,
    detect_recurring,
    is_amount_consistent,
)
from tests.helpers.db import seed_statement


def _monthly(description: str, amount: str, *, start: date, n: int, step: int = 30):
    return [(start + timedelta(days=step * i), description, amount, "debit") for i in range(n)]


def _flags(database_url: str, user_id: str) -> dict[str, list[bool]]:
    with session_scope(database_url=database_url) as session:
        rows = session.execute(
            select(SiTransaction).where(SiTransaction.user_id == user_id)
        ).scalars()
        out: dict[str, list[bool]] = {}
        for r in rows:
            out.setdefault(r.merchant, []).append(r.is_recurring)
        return out


# ---- Pure helpers --------------------------------------------------------------


def test_is_amount_consistent():
    assert is_amount_consistent([Decimal("15.49")] * 4)
    assert is_amount_consistent([Decimal("10.00"), Decimal("10.50"), Decimal("9.80")])
    assert not is_amount_consistent([Decimal("10"), Decimal("10"), Decimal("50")])
    assert not is_amount_consistent([Decimal("0"), Decimal("0")])


def test_average_gap_days_uses_the_mean_gap():
    class _Row:
        def __init__(self, d: date) -> None:
            self.date = d

    rows = [_Row(date(2024, 1, 1)), _Row(date(2024, 1, 11)), _Row(date(2024, 3, 1))]
    # gaps 10 and 50 average to 30
    assert average_gap_days(rows) == 30


# ---- Detection against the database --------------------------------------------


def test_detects_monthly_subscription(database_url):
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=_monthly("NETFLIX.COM", "15.49", start=date(2024, 1, 3), n=6),
    )

    with session_scope(database_url=database_url) as session:
        found = detect_recurring(session, "u1")

    assert found == [
        RecurringGroup(
            merchant="Netflix.com",
            amount=Decimal("15.49"),
            category=Category.SUBSCRIPTIONS,
            count=6,
            frequency=Frequency.MONTHLY,
        )
    ]
    assert found[0].as_payload() == {
        "merchant": "Netflix.com",
        "amount": 15.49,
        "frequency": "monthly",
        "category": "subscriptions",
        "count": 6,
    }
    assert _flags(database_url, "u1") == {"Netflix.com": [True] * 6}


def test_single_outlier_disqualifies_merchant(database_url):
    rows = _monthly("SPOTIFY USA", "9.99", start=date(2024, 1, 10), n=4)
    rows.append((date(2024, 5, 10), "SPOTIFY USA", "29.99", "debit"))
    seed_statement(database_url=database_url, user_id="u1", rows=rows)

    with session_scope(database_url=database_url) as session:
        assert detect_recurring(session, "u1") == []
    assert _flags(database_url, "u1") == {"Spotify Usa": [False] * 5}


def test_gap_outside_monthly_window_is_ignored(database_url):
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=(
            _monthly("WEEKLY GYM", "12.00", start=date(2024, 1, 1), n=5, step=7)
            + _monthly("QUARTERLY INSURANCE", "300.00", start=date(2024, 1, 1), n=3, step=90)
        ),
    )
    with session_scope(database_url=database_url) as session:
        assert detect_recurring(session, "u1") == []


def test_single_occurrence_and_credits_do_not_count(database_url):
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=[
            (date(2024, 1, 1), "ONE OFF SHOP", "40.00", "debit"),
            (date(2024, 1, 15), "PAYROLL", "1000.00", "credit"),
            (date(2024, 2, 15), "PAYROLL", "1000.00", "credit"),
        ],
    )
    with session_scope(database_url=database_url) as session:
        assert detect_recurring(session, "u1") == []


def test_merchant_grouping_is_case_insensitive_and_scoped_per_user(database_url):
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=[
            (date(2024, 1, 5), "Hulu", "7.99", "debit"),
            (date(2024, 2, 4), "HULU", "7.99", "debit"),
        ],
    )
    seed_statement(
        database_url=database_url,
        user_id="u2",
        rows=[(date(2024, 3, 5), "HULU", "7.99", "debit")],
    )

    with session_scope(database_url=database_url) as session:
        found = detect_recurring(session, "u1")
        assert [(g.merchant, g.count) for g in found] == [("Hulu", 2)]
        assert detect_recurring(session, "u2") == []
    assert _flags(database_url, "u2") == {"Hulu": [False]}


def test_mixed_case_group_takes_name_from_first_merchant_in_sort_order(database_url):
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=_monthly("Hulu", "7.99", start=date(2024, 1, 5), n=3),
    )
    with session_scope(database_url=database_url) as session:
        latest = session.execute(
            select(SiTransaction)
            .where(SiTransaction.user_id == "u1")
            .order_by(SiTransaction.date.desc())
            .limit(1)
        ).scalar_one()
        latest.merchant = "HULU"

    with session_scope(database_url=database_url) as session:
        found = detect_recurring(session, "u1")
    # "HULU" sorts before "Hulu" even though it is the latest charge
    assert [(g.merchant, g.count) for g in found] == [("HULU", 3)]


def test_flags_persist_unless_reset_requested(database_url):
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=_monthly("NETFLIX.COM", "15.49", start=date(2024, 1, 3), n=3),
    )
    with session_scope(database_url=database_url) as session:
        detect_recurring(session, "u1")

    # An outlier now breaks the pattern
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=[(date(2024, 4, 2), "NETFLIX.COM", "99.00", "debit")],
    )
    with session_scope(database_url=database_url) as session:
        assert detect_recurring(session, "u1") == []
    assert _flags(database_url, "u1")["Netflix.com"].count(True) == 3

    with session_scope(database_url=database_url) as session:
        assert detect_recurring(session, "u1", reset_stale=True) == []
    assert _flags(database_url, "u1")["Netflix.com"] == [False] * 4


def test_reset_stale_can_come_from_environment(database_url, monkeypatch):
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=_monthly("NETFLIX.COM", "15.49", start=date(2024, 1, 3), n=2),
    )
    with session_scope(database_url=database_url) as session:
        detect_recurring(session, "u1")
    seed_statement(
        database_url=database_url,
        user_id="u1",
        rows=[(date(2024, 6, 1), "NETFLIX.COM", "15.49", "debit")],
    )

    monkeypatch.setenv("SI_RECURRING_RESET_STALE", "true")
    with session_scope(database_url=database_url) as session:
        # average gap is now well above 40 days
        assert detect_recurring(session, "u1") == []
    assert _flags(database_url, "u1")["Netflix.com"] == [False] * 3
