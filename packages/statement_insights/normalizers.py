"""Date and amount normalization for heterogeneous statement cells.

Both parsers signal failure with ``None`` and never raise for malformed input;
the CSV parser turns ``None`` into a row error.

Dates
-----
Tried in order: ISO ``YYYY-MM-DD``, ``MM/DD/YYYY`` (single-digit month/day
allowed), ``MM-DD-YYYY``, ``MM/DD/YY`` and finally a generic parse via
``dateutil``. ``MM/DD/YY`` also takes single-digit month/day. Two-digit years
above 50 land in the 1900s, everything else (including ``50``) in the 2000s.
The cutoff is arbitrary and kept as-is.

Amounts
-------
Numbers pass through unchanged. Strings lose currency symbols (``$ € £``),
thousands separators and whitespace; a value wrapped in parentheses is
negative (accounting convention). Magnitudes of ``MAX_AMOUNT`` and above do
not fit the stored column and are rejected.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_US_SLASH_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_US_DASH_RE = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")
_US_SHORT_YEAR_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")

_AMOUNT_NOISE_RE = re.compile(r"[$€£,\s]")

TWO_DIGIT_YEAR_PIVOT = 50

_CENT = Decimal("0.01")

# Stored as Numeric(12, 2).
MAX_AMOUNT = Decimal(10) ** 10


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def expand_two_digit_year(yy: int) -> int:
    """``51``..``99`` → 1951..1999; ``00``..``50`` → 2000..2050."""

    return 1900 + yy if yy > TWO_DIGIT_YEAR_PIVOT else 2000 + yy


def parse_date(raw: Any) -> date | None:
    """Parse a statement date cell into a calendar date, or ``None``."""

    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw).strip()
    if not s:
        return None

    m = _ISO_RE.match(s)
    if m:
        return _safe_date(int(m[1]), int(m[2]), int(m[3]))

    m = _US_SLASH_RE.match(s)
    if m:
        return _safe_date(int(m[3]), int(m[1]), int(m[2]))

    m = _US_DASH_RE.match(s)
    if m:
        return _safe_date(int(m[3]), int(m[1]), int(m[2]))

    m = _US_SHORT_YEAR_RE.match(s)
    if m:
        return _safe_date(expand_two_digit_year(int(m[3])), int(m[1]), int(m[2]))

    # Last resort: let dateutil have a go (month names, timestamps, ...).
    try:
        return date_parser.parse(s).date()
    except (ValueError, OverflowError):
        return None


def _checked(d: Decimal) -> Decimal | None:
    # 9999999999.995 rounds to the limit
    if not d.is_finite() or abs(d) >= MAX_AMOUNT or round_money(abs(d)) >= MAX_AMOUNT:
        return None
    return d


def parse_amount(raw: Any) -> Decimal | None:
    """Parse a currency cell into a signed ``Decimal``, or ``None``."""

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return _checked(raw)
    if isinstance(raw, int | float):
        return _checked(Decimal(str(raw)))

    s = _AMOUNT_NOISE_RE.sub("", str(raw)).strip()
    if not s:
        return None
    negative = False
    if s.startswith("(") and s.endswith(")") and len(s) >= 2:
        negative = True
        s = s[1:-1]
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    d = _checked(d)
    if d is None:
        return None
    return -d if negative else d


def round_money(d: Decimal) -> Decimal:
    """Quantize to two fraction digits, half away from zero."""

    return d.quantize(_CENT, rounding=ROUND_HALF_UP)


__all__ = [
    "MAX_AMOUNT",
    "TWO_DIGIT_YEAR_PIVOT",
    "expand_two_digit_year",
    "parse_amount",
    "parse_date",
    "round_money",
]
