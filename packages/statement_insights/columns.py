"""Header → logical field mapping for arbitrary statement exports.

Banks disagree on header names, so each logical field has an ordered synonym
list. Matching is a case-insensitive, whitespace-trimmed exact comparison and
the synonym order is the priority order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

COLUMN_SYNONYMS: dict[str, tuple[str, ...]] = {
    "date": ("date", "transaction date", "trans date", "post date", "posting date", "txn date"),
    "description": (
        "description",
        "merchant",
        "name",
        "memo",
        "details",
        "transaction description",
        "payee",
    ),
    "amount": ("amount", "transaction amount", "debit", "charge"),
    "credit": ("credit", "payment", "credit amount"),
    "type": ("type", "transaction type", "trans type"),
}


def find_column(headers: Sequence[str], candidates: Sequence[str]) -> str | None:
    """Return the first header matching a candidate (in candidate order)."""

    normalized = [h.strip().lower() for h in headers]
    for candidate in candidates:
        try:
            pos = normalized.index(candidate)
        except ValueError:
            continue
        return headers[pos]
    return None


@dataclass(frozen=True, slots=True)
class ColumnMap:
    date: str | None
    description: str | None
    amount: str | None
    credit: str | None
    type: str | None

    def missing_required(self) -> str | None:
        """Name the first required logical field that could not be located."""

        if self.date is None:
            return "date"
        if self.description is None:
            return "description"
        if self.amount is None and self.credit is None:
            return "amount"
        return None


def map_columns(headers: Sequence[str]) -> ColumnMap:
    return ColumnMap(
        date=find_column(headers, COLUMN_SYNONYMS["date"]),
        description=find_column(headers, COLUMN_SYNONYMS["description"]),
        amount=find_column(headers, COLUMN_SYNONYMS["amount"]),
        credit=find_column(headers, COLUMN_SYNONYMS["credit"]),
        type=find_column(headers, COLUMN_SYNONYMS["type"]),
    )


__all__ = ["COLUMN_SYNONYMS", "ColumnMap", "find_column", "map_columns"]
