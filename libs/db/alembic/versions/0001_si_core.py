# ruff: noqa: I001
"""Statement, transaction and insight tables.

Revision ID: 0001_si_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_si_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


# Mirrored from db.models.finance at the time of this revision.
_KINDS = ("debit", "credit")
_CATEGORIES = (
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
_SEVERITIES = ("info", "warning", "alert", "positive")
_INSIGHT_TYPES = (
    "spending_trend",
    "top_category",
    "subscription_creep",
    "spending_spikes",
    "top_merchants",
)
_STATUSES = ("processing", "completed", "failed")


def _in_list(column: str, values: Sequence[str]) -> str:
    return f"{column} in (" + ",".join(f"'{v}'" for v in values) + ")"


def upgrade() -> None:
    op.create_table(
        "si_statements",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("original_name", sa.Text(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=False),
        sa.Column("file_hash", sa.CHAR(64), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", "file_hash", name="uq_si_statements_user_hash"),
        sa.CheckConstraint(_in_list("status", _STATUSES), name="ck_si_statements_status"),
    )
    op.create_index("ix_si_statements_user", "si_statements", ["user_id"])

    op.create_table(
        "si_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column(
            "statement_id",
            sa.String(36),
            sa.ForeignKey("si_statements.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("merchant", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.Column("raw_record", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount >= 0", name="ck_si_tx_amount_non_negative"),
        sa.CheckConstraint(_in_list("kind", _KINDS), name="ck_si_tx_kind"),
        sa.CheckConstraint(_in_list("category", _CATEGORIES), name="ck_si_tx_category"),
    )
    op.create_index("ix_si_tx_user", "si_transactions", ["user_id"])
    op.create_index("ix_si_tx_date", "si_transactions", ["date"])
    op.create_index("ix_si_tx_category", "si_transactions", ["category"])

    op.create_table(
        "si_insights",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("period", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(_in_list("type", _INSIGHT_TYPES), name="ck_si_insights_type"),
        sa.CheckConstraint(_in_list("severity", _SEVERITIES), name="ck_si_insights_severity"),
    )
    op.create_index("ix_si_insights_user", "si_insights", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_si_insights_user", table_name="si_insights")
    op.drop_table("si_insights")
    op.drop_index("ix_si_tx_category", table_name="si_transactions")
    op.drop_index("ix_si_tx_date", table_name="si_transactions")
    op.drop_index("ix_si_tx_user", table_name="si_transactions")
    op.drop_table("si_transactions")
    op.drop_index("ix_si_statements_user", table_name="si_statements")
    op.drop_table("si_statements")
