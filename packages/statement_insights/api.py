"""Public orchestration surface for ``statement_insights``.

Each function here owns its database transactions (via
``db.client.session_scope``) so callers such as the CLI or a host web layer only
pass plain values. Lower-level modules take a ``Session`` and never commit.

Upload flow::

    size check -> duplicate check (sha256) -> parse -> insert statement +
    transactions (one transaction) -> regenerate insights (second transaction)
"""

from __future__ import annotations

from db.client import session_scope

from . import persistence
from .csv_parser import StatementParseError, parse_statement
from .insights import generate_insights
from .logging_setup import get_logger
from .models import IngestSummary, Insight
from .settings import load_settings

_logger = get_logger("statement_insights.api")


class DuplicateStatementError(ValueError):
    """The same file content was already uploaded by this user."""

    def __init__(self, statement_id: str) -> None:
        super().__init__(f"This file has already been uploaded (statement {statement_id})")
        self.statement_id = statement_id


def ingest_statement(
    content: str,
    *,
    user_id: str,
    original_name: str,
    database_url: str | None = None,
) -> IngestSummary:
    """Parse and persist one CSV statement, then refresh the user's insights.

    Raises
    ------
    ValueError
        When the content exceeds the configured upload size.
    DuplicateStatementError
        When the user already uploaded byte-identical content.
    StatementParseError
        When the document is unusable or no row produced a transaction. In the
        latter case ``row_errors`` carries the per-row reasons.
    """

    settings = load_settings()
    size = len(content.encode("utf-8"))
    if size > settings.max_upload_bytes:
        raise ValueError(
            f"File too large: {size} bytes exceeds the {settings.max_upload_bytes} byte limit"
        )

    file_hash = persistence.compute_file_hash(content)
    with session_scope(database_url=database_url) as session:
        existing = persistence.find_statement_by_hash(
            session, user_id=user_id, file_hash=file_hash
        )
        if existing is not None:
            raise DuplicateStatementError(existing.id)

    statement_id = persistence.new_id()
    outcome = parse_statement(content, user_id, statement_id)
    if not outcome.transactions:
        raise StatementParseError(
            "No valid transactions found in file", row_errors=outcome.errors
        )

    with session_scope(database_url=database_url) as session:
        persistence.insert_statement(
            session,
            statement_id=statement_id,
            user_id=user_id,
            original_name=original_name,
            file_hash=file_hash,
            transactions=outcome.transactions,
        )

    insights = regenerate_insights(user_id, database_url=database_url)

    _logger.info(
        "Ingested %s for user %s as statement %s: imported=%d rows=%d errors=%d",
        original_name,
        user_id,
        statement_id,
        len(outcome.transactions),
        outcome.total_rows,
        len(outcome.errors),
    )
    return IngestSummary(
        statement_id=statement_id,
        filename=original_name,
        transactions_imported=len(outcome.transactions),
        total_rows=outcome.total_rows,
        parsing_errors=len(outcome.errors),
        errors=outcome.errors[: settings.max_reported_row_errors],
        insights_generated=len(insights),
    )


def regenerate_insights(user_id: str, *, database_url: str | None = None) -> list[Insight]:
    """Recompute and atomically replace a user's stored insights."""

    with session_scope(database_url=database_url) as session:
        return generate_insights(session, user_id)


def delete_statement(
    statement_id: str, *, user_id: str, database_url: str | None = None
) -> list[Insight]:
    """Delete a statement with its transactions and refresh insights.

    Returns the regenerated insights. Raises ``LookupError`` when the
    statement does not exist or belongs to another user.
    """

    with session_scope(database_url=database_url) as session:
        deleted = persistence.delete_statement(
            session, statement_id=statement_id, user_id=user_id
        )
    if not deleted:
        raise LookupError(f"Statement not found: {statement_id}")

    _logger.info("Deleted statement %s for user %s", statement_id, user_id)
    return regenerate_insights(user_id, database_url=database_url)


def purge_user(user_id: str, *, database_url: str | None = None) -> None:
    with session_scope(database_url=database_url) as session:
        persistence.purge_user(session, user_id=user_id)
    _logger.info("Purged all statement data for user %s", user_id)


__all__ = [
    "DuplicateStatementError",
    "delete_statement",
    "ingest_statement",
    "purge_user",
    "regenerate_insights",
]
