# ruff: noqa: I001
"""CLI for the ``statement_insights`` package.

This module exposes plain command handlers (``cmd_ingest``, ``cmd_parse``, ...)
returning process exit codes, and a Typer-based console interface wrapping
them. Environment variables (notably ``DATABASE_URL``) are loaded from a local
``.env`` using ``python-dotenv`` before any command runs. Business logic lives
in ``statement_insights.api`` and the pipeline modules; this file only reads
files, calls into them and renders results.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated, Any
from collections.abc import Iterable, Sequence

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .logging_setup import configure_logging

console = Console()


# ---- Small module-level helpers used by CLI commands -------------------------


def _read_statement(csv_path: Path) -> str | None:
    """Read a statement file as text, printing a friendly error on failure."""

    try:
        return csv_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
    except UnicodeDecodeError as e:
        print(f"Error: File is not valid UTF-8 text: {csv_path} ({e})", file=sys.stderr)
    return None


def _print_row_errors(errors: Sequence[str], *, total: int | None = None) -> None:
    if not errors:
        return
    shown = total if total is not None else len(errors)
    print(f"Row errors ({shown}):")
    for err in errors:
        print(f"  {err}")
    if total is not None and total > len(errors):
        print(f"  ... and {total - len(errors)} more")


def _table(title: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> Table:
    table = Table(title=title)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*(str(v) for v in row))
    return table


# ---- Command handlers ----------------------------------------------------------


def cmd_ingest(csv_path: str, *, user_id: str, database_url: str | None = None) -> int:
    """Upload one CSV statement for ``user_id`` and print the ingest summary."""

    from .api import DuplicateStatementError, ingest_statement
    from .csv_parser import StatementParseError

    path = Path(csv_path)
    content = _read_statement(path)
    if content is None:
        return 1

    try:
        summary = ingest_statement(
            content, user_id=user_id, original_name=path.name, database_url=database_url
        )
    except DuplicateStatementError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except StatementParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        for err in e.row_errors:
            print(f"  {err}", file=sys.stderr)
        return 1
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Statement: {summary.statement_id}")
    print(f"Imported {summary.transactions_imported} of {summary.total_rows} rows")
    print(f"Insights generated: {summary.insights_generated}")
    _print_row_errors(summary.errors, total=summary.parsing_errors)
    return 0


def cmd_parse(csv_path: str, *, user_id: str = "local") -> int:
    """Dry run: parse a statement and show the transactions without a database."""

    from .csv_parser import StatementParseError, parse_statement

    content = _read_statement(Path(csv_path))
    if content is None:
        return 1
    try:
        outcome = parse_statement(content, user_id, "dry-run")
    except StatementParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    console.print(
        _table(
            "Parsed transactions",
            ("Date", "Merchant", "Amount", "Kind", "Category"),
            (
                (tx.date.isoformat(), tx.merchant, f"{tx.amount:.2f}", tx.kind, tx.category)
                for tx in outcome.transactions
            ),
        )
    )
    print(f"Parsed {len(outcome.transactions)} of {outcome.total_rows} rows")
    _print_row_errors(outcome.errors)
    return 0


def cmd_insights(
    *, user_id: str, database_url: str | None = None, regenerate: bool = False
) -> int:
    """Print a user's stored insights, optionally recomputing them first."""

    from db.client import session_scope

    from .api import regenerate_insights
    from .categories import severity_color
    from .persistence import load_insights

    try:
        if regenerate:
            regenerate_insights(user_id, database_url=database_url)
        with session_scope(database_url=database_url) as session:
            stored = [
                (i.severity, i.title, i.description)
                for i in load_insights(session, user_id=user_id)
            ]
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not stored:
        print(f"No insights for user {user_id}")
        return 0
    for severity, title, description in stored:
        color = severity_color(severity)
        console.print(f"[{color}]{severity.upper()}[/{color}] {title}", highlight=False)
        console.print(f"  {description}", highlight=False)
    return 0


def cmd_recurring(*, user_id: str, database_url: str | None = None) -> int:
    """Run recurring detection (flags are persisted) and list the results."""

    from db.client import session_scope

    from .recurring import detect_recurring

    try:
        with session_scope(database_url=database_url) as session:
            groups = detect_recurring(session, user_id)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not groups:
        print(f"No recurring charges detected for user {user_id}")
        return 0
    console.print(
        _table(
            "Recurring charges",
            ("Merchant", "Amount", "Count", "Category", "Frequency"),
            ((g.merchant, f"{g.amount:.2f}", g.count, g.category, g.frequency) for g in groups),
        )
    )
    return 0


def cmd_report(
    *, user_id: str, database_url: str | None = None, month: str | None = None
) -> int:
    """Render the dashboard aggregations as tables."""

    from db.client import session_scope

    from . import analytics

    try:
        with session_scope(database_url=database_url) as session:
            summary = analytics.overview(session, user_id)
            months = analytics.monthly_totals(session, user_id)
            breakdown = analytics.category_breakdown(session, user_id, month=month)
            merchants = analytics.top_merchants(session, user_id)
            recurring = analytics.recurring_summary(session, user_id)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    span = summary["date_range"]
    print(f"Statements: {summary['statement_count']}")
    print(f"Transactions: {summary['total_transactions']}")
    print(f"Total spent: ${summary['total_spent']:.2f}")
    print(f"Total credits: ${summary['total_credits']:.2f}")
    if span["earliest"] is not None:
        print(f"Date range: {span['earliest']} to {span['latest']}")

    console.print(
        _table(
            "Monthly totals",
            ("Month", "Spent", "Credits", "Transactions"),
            (
                (m["month"], f"{m['spent']:.2f}", f"{m['credits']:.2f}", m["transactions"])
                for m in months
            ),
        )
    )
    console.print(
        _table(
            f"Categories ({month})" if month else "Categories",
            ("Category", "Total", "Count", "Share %"),
            (
                (c["label"], f"{c['total']:.2f}", c["count"], f"{c['percentage']:.1f}")
                for c in breakdown["categories"]
            ),
        )
    )
    console.print(
        _table(
            "Top merchants",
            ("Merchant", "Total", "Count"),
            ((m["merchant"], f"{m['total']:.2f}", m["count"]) for m in merchants),
        )
    )
    if recurring["subscriptions"]:
        console.print(
            _table(
                "Subscriptions",
                ("Merchant", "Avg amount", "Occurrences", "Last seen"),
                (
                    (s["merchant"], f"{s['avg_amount']:.2f}", s["occurrences"], s["last_seen"])
                    for s in recurring["subscriptions"]
                ),
            )
        )
        print(
            f"Subscriptions: ${recurring['monthly_total']:.2f}/month, "
            f"${recurring['yearly_estimate']:.2f}/year"
        )
    return 0


def cmd_delete_statement(
    statement_id: str, *, user_id: str, database_url: str | None = None
) -> int:
    from .api import delete_statement

    try:
        insights = delete_statement(statement_id, user_id=user_id, database_url=database_url)
    except LookupError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Deleted statement {statement_id}; {len(insights)} insights regenerated")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Ingest bank/card CSV statements and derive spending insights. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to a CSV statement export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
    readable=True,
)
USER_ID_OPTION: OptionInfo = typer.Option(..., "--user-id", help="Owner of the statement data.")
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


@app.command("ingest")
def ingest_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Parse a CSV statement, store its transactions and refresh insights."""

    raise typer.Exit(cmd_ingest(str(csv_path), user_id=user_id, database_url=database_url))


@app.command("parse")
def parse_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    user_id: Annotated[str, typer.Option(help="User id stamped on parsed rows.")] = "local",
) -> None:
    """Parse a CSV statement and print the result without touching a database."""

    raise typer.Exit(cmd_parse(str(csv_path), user_id=user_id))


@app.command("insights")
def insights_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    regenerate: Annotated[
        bool, typer.Option(help="Recompute insights before printing them.")
    ] = False,
) -> None:
    """Show a user's insights."""

    raise typer.Exit(
        cmd_insights(user_id=user_id, database_url=database_url, regenerate=regenerate)
    )


@app.command("recurring")
def recurring_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Detect recurring charges for a user."""

    raise typer.Exit(cmd_recurring(user_id=user_id, database_url=database_url))


@app.command("report")
def report_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    month: Annotated[
        str | None, typer.Option(help="Limit the category table to one YYYY-MM month.")
    ] = None,
) -> None:
    """Print spending totals, categories, merchants and subscriptions."""

    raise typer.Exit(cmd_report(user_id=user_id, database_url=database_url, month=month))


@app.command("delete-statement")
def delete_statement_cmd(
    statement_id: Annotated[str, typer.Option("--statement-id", help="Statement to delete.")],
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete a statement and its transactions, then refresh insights."""

    raise typer.Exit(
        cmd_delete_statement(statement_id, user_id=user_id, database_url=database_url)
    )


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m statement_insights.cli`
    app()
