from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    CHAR,
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Closed value sets mirrored by CHECK constraints. The Python enums in
# ``statement_insights.models`` are the source of truth; migration 0001 carries
# the same lists.
TRANSACTION_KINDS: tuple[str, ...] = ("debit", "credit")
CATEGORY_CODES: tuple[str, ...] = (
    "dining",
    "groceries",
    "transport",
    "shopping",
    "subscriptions",
    "utilities",
    "health",
    "entertainment",
    "travel",
    "education",
    "insurance",
    "transfers",
    "uncategorized",
)
SEVERITIES: tuple[str, ...] = ("info", "warning", "alert", "positive")
INSIGHT_TYPES: tuple[str, ...] = (
    "spending_trend",
    "top_category",
    "subscription_creep",
    "spending_spikes",
    "top_merchants",
)
STATEMENT_STATUSES: tuple[str, ...] = ("processing", "completed", "failed")


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ",".join(f"'{v}'" for v in values)
    return f"{column} in ({quoted})"


class Base(DeclarativeBase):
    pass


# ---------------------------
# Uploads: si_statements
# ---------------------------


class SiStatement(Base):
    __tablename__ = "si_statements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # Opaque owner key supplied by the caller; user management lives elsewhere.
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    original_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str] = mapped_column(String, nullable=False, default="csv")
    file_hash: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="processing")
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    transactions: Mapped[list[SiTransaction]] = relationship(
        back_populates="statement",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "file_hash", name="uq_si_statements_user_hash"),
        CheckConstraint(_in_list("status", STATEMENT_STATUSES), name="ck_si_statements_status"),
        Index("ix_si_statements_user", "user_id"),
    )


# ---------------------------
# Core: si_transactions
# ---------------------------


class SiTransaction(Base):
    __tablename__ = "si_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    statement_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("si_statements.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    merchant: Mapped[str] = mapped_column(Text, nullable=False)
    # Magnitude only; the sign lives in ``kind``.
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False, default="uncategorized")
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    raw_record: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    statement: Mapped[SiStatement] = relationship(back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_si_tx_amount_non_negative"),
        CheckConstraint(_in_list("kind", TRANSACTION_KINDS), name="ck_si_tx_kind"),
        CheckConstraint(_in_list("category", CATEGORY_CODES), name="ck_si_tx_category"),
        Index("ix_si_tx_user", "user_id"),
        Index("ix_si_tx_date", "date"),
        Index("ix_si_tx_category", "category"),
    )


# ---------------------------
# Derived: si_insights
# ---------------------------


class SiInsight(Base):
    __tablename__ = "si_insights"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    # Generation order within one run; insights are read back in this order.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String, nullable=False, default="info")
    data: Mapped[Any] = mapped_column(JSON, nullable=True)
    period: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(_in_list("type", INSIGHT_TYPES), name="ck_si_insights_type"),
        CheckConstraint(_in_list("severity", SEVERITIES), name="ck_si_insights_severity"),
        Index("ix_si_insights_user", "user_id"),
    )


__all__ = [
    "Base",
    "CATEGORY_CODES",
    "INSIGHT_TYPES",
    "SEVERITIES",
    "STATEMENT_STATUSES",
    "TRANSACTION_KINDS",
    "SiInsight",
    "SiStatement",
    "SiTransaction",
]
