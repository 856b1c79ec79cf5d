"""CSV statement → normalized transactions.

Parsing uses the stdlib :mod:`csv` module over the in-memory text (statements
are bounded by the upload limit). Header names are arbitrary; see
:mod:`statement_insights.columns` for how date/description/amount/credit/type
columns are located.

Two failure tiers:

- Row-level problems (bad date, empty description, unparseable amount) are
  collected as ``"Row <n>: <reason>"`` strings and the row is skipped.
- Document-level problems (malformed CSV, no data rows, missing required
  columns) raise :class:`StatementParseError` and produce nothing.
"""

from __future__ import annotations

import csv
from collections.abc import Mapping
from decimal import Decimal
from io import StringIO

from .categories import categorize, extract_merchant
from .columns import COLUMN_SYNONYMS, ColumnMap, map_columns
from .logging_setup import get_logger
from .models import ParsedTransaction, ParseOutcome, TransactionKind
from .normalizers import parse_amount, parse_date, round_money

_logger = get_logger("statement_insights.csv_parser")

_BOM = "\ufeff"


class StatementParseError(ValueError):
    """The whole statement was rejected; no transactions were produced.

    ``row_errors`` is populated when the rejection happened after row-level
    parsing (e.g. every row failed), so callers can still show why.
    """

    def __init__(self, message: str, *, row_errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.row_errors: list[str] = list(row_errors or [])


class _RowError(Exception):
    """Internal signal: reject the current row with ``reason``."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


# ---------------------------------------------------------------------------
# Tabular decoding
# ---------------------------------------------------------------------------


def _read_rows(content: str) -> tuple[list[str], list[dict[str, str]]]:
    """Decode CSV text into trimmed headers and trimmed row dicts.

    Rows with more cells than headers drop the extras; rows with fewer read the
    missing cells as ``""``. Rows whose cells are all blank are skipped.
    """

    if content.startswith(_BOM):
        content = content[len(_BOM) :]
    try:
        with StringIO(content, newline="") as f:
            # strict: stray quotes are a structural error, not data.
            reader = csv.reader(f, strict=True)
            headers: list[str] | None = None
            rows: list[dict[str, str]] = []
            for cells in reader:
                if headers is None:
                    if not any(c.strip() for c in cells):
                        continue
                    headers = [c.strip() for c in cells]
                    continue
                if not any(c.strip() for c in cells):
                    continue
                row: dict[str, str] = {}
                for pos, header in enumerate(headers):
                    # First occurrence wins for duplicated header names.
                    if header in row:
                        continue
                    row[header] = cells[pos].strip() if pos < len(cells) else ""
                rows.append(row)
    except csv.Error as exc:
        raise StatementParseError(f"CSV parsing failed: {exc}") from exc
    return headers or [], rows


def _missing_column_error(field: str) -> StatementParseError:
    expected = ", ".join(COLUMN_SYNONYMS[field])
    return StatementParseError(f"Could not find a {field} column. Expected: {expected}")


# ---------------------------------------------------------------------------
# Per-row resolution
# ---------------------------------------------------------------------------


def _resolve_amount(row: Mapping[str, str], cols: ColumnMap) -> tuple[Decimal, TransactionKind]:
    if cols.amount is not None and cols.credit is not None:
        # Separate debit/credit columns: a positive credit wins, otherwise a
        # non-zero amount is a debit.
        debit_amt = parse_amount(row.get(cols.amount))
        credit_amt = parse_amount(row.get(cols.credit))
        if credit_amt is not None and credit_amt > 0:
            return credit_amt, TransactionKind.CREDIT
        if debit_amt is not None and debit_amt != 0:
            return abs(debit_amt), TransactionKind.DEBIT
        raise _RowError("Invalid amount")

    # Only one amount-bearing column is present (either may be the one).
    column = cols.amount if cols.amount is not None else cols.credit
    assert column is not None  # guarded by missing_required()
    raw = row.get(column, "")
    amount = parse_amount(raw)
    if amount is None:
        raise _RowError(f'Invalid amount "{raw}"')

    type_text = row.get(cols.type, "") if cols.type is not None else ""
    if type_text:
        kind = TransactionKind.CREDIT if "credit" in type_text.lower() else TransactionKind.DEBIT
    elif cols.amount is None:
        # A lone credit column only carries money coming in.
        kind = TransactionKind.CREDIT
    else:
        kind = TransactionKind.CREDIT if amount < 0 else TransactionKind.DEBIT
    return abs(amount), kind


def _parse_row(
    row: Mapping[str, str], cols: ColumnMap, *, user_id: str, statement_id: str
) -> ParsedTransaction:
    assert cols.date is not None and cols.description is not None

    raw_date = row.get(cols.date, "")
    tx_date = parse_date(raw_date)
    if tx_date is None:
        raise _RowError(f'Invalid date "{raw_date}"')

    description = (row.get(cols.description) or "").strip()
    if not description:
        raise _RowError("Empty description")

    amount, kind = _resolve_amount(row, cols)

    return ParsedTransaction(
        user_id=user_id,
        statement_id=statement_id,
        date=tx_date,
        description=description,
        merchant=extract_merchant(description),
        amount=round_money(amount),
        kind=kind,
        category=categorize(description),
        raw=dict(row),
    )


# ---------------------------------------------------------------------------
# Public entrypoint
# ---------------------------------------------------------------------------


def parse_statement(content: str, user_id: str, statement_id: str) -> ParseOutcome:
    """Parse one CSV statement into transactions plus per-row errors.

    Raises
    ------
    StatementParseError
        When the CSV is malformed, has no data rows, or lacks a date,
        description or amount/credit column.
    """

    headers, rows = _read_rows(content)
    if not rows:
        raise StatementParseError("CSV file contains no data rows")

    cols = map_columns(headers)
    missing = cols.missing_required()
    if missing is not None:
        raise _missing_column_error(missing)

    transactions: list[ParsedTransaction] = []
    errors: list[str] = []
    for n, row in enumerate(rows, start=1):
        try:
            transactions.append(
                _parse_row(row, cols, user_id=user_id, statement_id=statement_id)
            )
        except _RowError as err:
            errors.append(f"Row {n}: {err.reason}")

    _logger.info(
        "Parsed statement %s: rows=%d transactions=%d errors=%d",
        statement_id,
        len(rows),
        len(transactions),
        len(errors),
    )
    return ParseOutcome(transactions=transactions, errors=errors, total_rows=len(rows))


__all__ = ["StatementParseError", "parse_statement"]
