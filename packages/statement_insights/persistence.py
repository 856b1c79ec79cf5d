# ruff: noqa: I001
"""Persistence integration for statement_insights.

Functions here read and write the shared database owned by ``libs/db`` through
the SQLAlchemy ORM models in ``db.models.finance``. Every function takes an
active ``Session``; the caller owns the transaction (normally via
``db.client.session_scope``), which is what makes "insert a statement with all
of its transactions" and "replace a user's insights" atomic.

Scope:
- Statements and their transactions (bulk insert, lookup by file hash, delete).
- Recurring flags on transactions.
- Full replacement of a user's insight set.
"""

from __future__ import annotations

import hashlib
import uuid
from collections.abc import Iterable, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from db.models.finance import SiInsight, SiStatement, SiTransaction
from .models import Insight, ParsedTransaction, TransactionKind


def new_id() -> str:
    return str(uuid.uuid4())


def compute_file_hash(content: str) -> str:
    """SHA-256 over the uploaded text; used to reject duplicate uploads."""

    return hashlib.sha256(content.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Statements and transactions
# ---------------------------------------------------------------------------


def find_statement_by_hash(session: Session, *, user_id: str, file_hash: str) -> SiStatement | None:
    stmt = select(SiStatement).where(
        (SiStatement.user_id == user_id) & (SiStatement.file_hash == file_hash)
    )
    return session.execute(stmt).scalar_one_or_none()


def insert_statement(
    session: Session,
    *,
    statement_id: str,
    user_id: str,
    original_name: str,
    file_hash: str,
    transactions: Sequence[ParsedTransaction],
) -> SiStatement:
    """Add a completed statement row and all of its transactions.

    Nothing is committed here; a failure anywhere leaves the caller's scope to
    roll back the whole batch.
    """

    statement = SiStatement(
        id=statement_id,
        user_id=user_id,
        original_name=original_name,
        file_type="csv",
        file_hash=file_hash,
        row_count=len(transactions),
        status="completed",
    )
    session.add(statement)
    session.add_all(
        SiTransaction(
            id=new_id(),
            user_id=tx.user_id,
            statement_id=statement_id,
            date=tx.date,
            description=tx.description,
            merchant=tx.merchant,
            amount=tx.amount,
            kind=str(tx.kind),
            category=str(tx.category),
            is_recurring=tx.is_recurring,
            raw_record=dict(tx.raw),
        )
        for tx in transactions
    )
    session.flush()
    return statement


def list_statements(session: Session, *, user_id: str) -> list[SiStatement]:
    stmt = (
        select(SiStatement)
        .where(SiStatement.user_id == user_id)
        .order_by(SiStatement.uploaded_at.desc(), SiStatement.id)
    )
    return list(session.execute(stmt).scalars())


def delete_statement(session: Session, *, statement_id: str, user_id: str) -> bool:
    """Delete a user's statement; its transactions go with it (FK cascade).

    Returns ``False`` when no such statement belongs to ``user_id``.
    """

    statement = session.execute(
        select(SiStatement).where(
            (SiStatement.id == statement_id) & (SiStatement.user_id == user_id)
        )
    ).scalar_one_or_none()
    if statement is None:
        return False
    session.delete(statement)
    session.flush()
    return True


def purge_user(session: Session, *, user_id: str) -> None:
    """Remove every statement, transaction and insight owned by ``user_id``."""

    session.execute(delete(SiInsight).where(SiInsight.user_id == user_id))
    session.execute(delete(SiTransaction).where(SiTransaction.user_id == user_id))
    session.execute(delete(SiStatement).where(SiStatement.user_id == user_id))


def load_transactions(
    session: Session,
    *,
    user_id: str,
    kind: TransactionKind | None = None,
) -> list[SiTransaction]:
    """Return a user's transactions in storage-stable order (date, then id)."""

    stmt = select(SiTransaction).where(SiTransaction.user_id == user_id)
    if kind is not None:
        stmt = stmt.where(SiTransaction.kind == str(kind))
    stmt = stmt.order_by(SiTransaction.date, SiTransaction.id)
    return list(session.execute(stmt).scalars())


def load_debits_by_merchant(session: Session, *, user_id: str) -> list[SiTransaction]:
    """Debits ordered by merchant then date, as recurring detection expects."""

    stmt = (
        select(SiTransaction)
        .where(
            (SiTransaction.user_id == user_id)
            & (SiTransaction.kind == str(TransactionKind.DEBIT))
        )
        .order_by(SiTransaction.merchant, SiTransaction.date, SiTransaction.id)
    )
    return list(session.execute(stmt).scalars())


# ---------------------------------------------------------------------------
# Recurring flags
# ---------------------------------------------------------------------------


def mark_recurring(session: Session, *, transaction_ids: Iterable[str]) -> int:
    ids = list(transaction_ids)
    if not ids:
        return 0
    result = session.execute(
        update(SiTransaction)
        .where(SiTransaction.id.in_(ids))
        .values(is_recurring=True)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def clear_recurring_flags(session: Session, *, user_id: str) -> None:
    session.execute(
        update(SiTransaction)
        .where(SiTransaction.user_id == user_id)
        .values(is_recurring=False)
        .execution_options(synchronize_session="fetch")
    )


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


def replace_insights(session: Session, *, user_id: str, insights: Sequence[Insight]) -> None:
    """Swap a user's whole insight set for ``insights``.

    Delete and insert run inside the caller's transaction, so readers on other
    connections see either the previous set or the new one.
    """

    session.execute(delete(SiInsight).where(SiInsight.user_id == user_id))
    session.add_all(
        SiInsight(
            id=new_id(),
            user_id=user_id,
            position=pos,
            type=str(ins.type),
            title=ins.title,
            description=ins.description,
            severity=str(ins.severity),
            data=ins.data,
            period=ins.period,
        )
        for pos, ins in enumerate(insights)
    )
    session.flush()


def load_insights(session: Session, *, user_id: str) -> list[SiInsight]:
    stmt = (
        select(SiInsight)
        .where(SiInsight.user_id == user_id)
        .order_by(SiInsight.position)
    )
    return list(session.execute(stmt).scalars())


__all__ = [
    "clear_recurring_flags",
    "compute_file_hash",
    "delete_statement",
    "find_statement_by_hash",
    "insert_statement",
    "list_statements",
    "load_debits_by_merchant",
    "load_insights",
    "load_transactions",
    "mark_recurring",
    "new_id",
    "purge_user",
    "replace_insights",
]
