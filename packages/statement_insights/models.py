"""Data models and closed value sets for ``statement_insights``.

Pipeline records are frozen dataclasses; the ingest summary handed back to
callers (CLI, a host API layer) is a pydantic model so it can be validated and
serialized directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Closed value sets
# ---------------------------------------------------------------------------


class TransactionKind(StrEnum):
    DEBIT = "debit"
    CREDIT = "credit"


class Category(StrEnum):
    """Category codes, in the declaration order of the keyword rules."""

    DINING = "dining"
    GROCERIES = "groceries"
    TRANSPORT = "transport"
    SHOPPING = "shopping"
    SUBSCRIPTIONS = "subscriptions"
    UTILITIES = "utilities"
    HEALTH = "health"
    ENTERTAINMENT = "entertainment"
    TRAVEL = "travel"
    EDUCATION = "education"
    INSURANCE = "insurance"
    TRANSFERS = "transfers"
    UNCATEGORIZED = "uncategorized"


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"
    POSITIVE = "positive"


class InsightType(StrEnum):
    SPENDING_TREND = "spending_trend"
    TOP_CATEGORY = "top_category"
    SUBSCRIPTION_CREEP = "subscription_creep"
    SPENDING_SPIKES = "spending_spikes"
    TOP_MERCHANTS = "top_merchants"


class Frequency(StrEnum):
    MONTHLY = "monthly"


# An input row keyed by whatever headers the statement used.
RawRow: TypeAlias = Mapping[str, Any]


# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParsedTransaction:
    """One normalized statement line, ready for bulk persistence.

    ``amount`` is always a non-negative magnitude with two fraction digits;
    the direction of money is carried by ``kind``. ``raw`` keeps the source row
    for audit/debugging.
    """

    user_id: str
    statement_id: str
    date: date
    description: str
    merchant: str
    amount: Decimal
    kind: TransactionKind
    category: Category
    raw: RawRow
    is_recurring: bool = False


@dataclass(frozen=True, slots=True)
class ParseOutcome:
    """Result of parsing one statement.

    ``errors`` holds one ``"Row <n>: <reason>"`` string per rejected row
    (1-based data row numbers). ``total_rows`` counts the data rows read,
    excluding blank lines.
    """

    transactions: list[ParsedTransaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    total_rows: int = 0


# ---------------------------------------------------------------------------
# Derived records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RecurringGroup:
    """A merchant judged amount-stable and roughly periodic."""

    merchant: str
    amount: Decimal
    category: Category
    count: int
    frequency: Frequency = Frequency.MONTHLY

    def as_payload(self) -> dict[str, Any]:
        return {
            "merchant": self.merchant,
            "amount": float(self.amount),
            "frequency": str(self.frequency),
            "category": str(self.category),
            "count": self.count,
        }


@dataclass(frozen=True, slots=True)
class Insight:
    """A rendered observation about a user's transactions.

    ``title`` and ``description`` are final human text. ``data`` is a
    JSON-serializable payload for charts/drill-downs.
    """

    type: InsightType
    title: str
    description: str
    severity: Severity
    data: Any = None
    period: str | None = None


# ---------------------------------------------------------------------------
# Caller-facing summaries
# ---------------------------------------------------------------------------


class IngestSummary(BaseModel):
    """What an upload produced; mirrors the upload endpoint's response body."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    statement_id: str
    filename: str
    transactions_imported: int
    total_rows: int
    parsing_errors: int
    errors: list[str] = []
    insights_generated: int

    @field_validator("transactions_imported", "total_rows", "parsing_errors", "insights_generated")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("counts must be non-negative")
        return v


__all__ = [
    "Category",
    "Frequency",
    "IngestSummary",
    "Insight",
    "InsightType",
    "ParseOutcome",
    "ParsedTransaction",
    "RawRow",
    "RecurringGroup",
    "Severity",
    "TransactionKind",
]
