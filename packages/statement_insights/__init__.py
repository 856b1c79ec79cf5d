"""Public interface for the ``statement_insights`` package.

This module exposes the package's orchestration functions, the statement
parser and the public models/types as the stable import surface. There is no
runtime logic here, only symbol re-exports.
"""

from .api import (
    DuplicateStatementError,
    delete_statement,
    ingest_statement,
    purge_user,
    regenerate_insights,
)
from .csv_parser import StatementParseError, parse_statement
from .models import (
    Category,
    IngestSummary,
    Insight,
    InsightType,
    ParsedTransaction,
    ParseOutcome,
    RecurringGroup,
    Severity,
    TransactionKind,
)

__all__ = [
    # API
    "delete_statement",
    "ingest_statement",
    "parse_statement",
    "purge_user",
    "regenerate_insights",
    # Errors
    "DuplicateStatementError",
    "StatementParseError",
    # Models / types
    "Category",
    "IngestSummary",
    "Insight",
    "InsightType",
    "ParseOutcome",
    "ParsedTransaction",
    "RecurringGroup",
    "Severity",
    "TransactionKind",
]
