import logging
from pathlib import Path

from typer.testing import CliRunner

import statement_insights.logging_setup as logging_setup
from statement_insights.cli import app

_DATA = Path(__file__).parent / "data" / "checking_2024q1.csv"

runner = CliRunner()


def _invoke(*args: str):
    # Each invocation gets fresh streams; drop the handler bound to the last ones.
    pkg_logger = logging.getLogger(logging_setup.PACKAGE_LOGGER)
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    logging_setup._handler = None
    return runner.invoke(app, list(args))


def _ingest(database_url: str, *, user_id: str = "u1"):
    return _invoke(
        "ingest",
        "--csv-path",
        str(_DATA),
        "--user-id",
        user_id,
        "--database-url",
        database_url,
    )


def test_ingest_prints_summary(database_url):
    result = _ingest(database_url)

    assert result.exit_code == 0, result.output
    assert "Imported 15 of 17 rows" in result.output
    assert "Insights generated: 5" in result.output
    assert "Row errors (2):" in result.output
    assert 'Row 16: Invalid date "someday"' in result.output


def test_ingest_duplicate_fails(database_url):
    assert _ingest(database_url).exit_code == 0

    result = _ingest(database_url)
    assert result.exit_code == 1
    assert "Error: This file has already been uploaded" in result.output


def test_ingest_missing_file(database_url, tmp_path):
    result = _invoke(
        "ingest",
        "--csv-path",
        str(tmp_path / "nope.csv"),
        "--user-id",
        "u1",
        "--database-url",
        database_url,
    )
    assert result.exit_code == 1
    assert "Error: File not found" in result.output


def test_ingest_unparseable_statement(database_url, tmp_path):
    bad = tmp_path / "bad.csv"
    bad.write_text("Foo,Bar\n1,2\n", encoding="utf-8")
    result = _invoke(
        "ingest", "--csv-path", str(bad), "--user-id", "u1", "--database-url", database_url
    )
    assert result.exit_code == 1
    assert "Error: Could not find a date column" in result.output


def test_parse_is_a_dry_run():
    result = _invoke("parse", "--csv-path", str(_DATA))

    assert result.exit_code == 0, result.output
    assert "Parsed 15 of 17 rows" in result.output
    assert "Netflix.com" in result.output
    assert "Row 17: Empty description" in result.output


def test_insights_recurring_and_report(database_url):
    assert _ingest(database_url).exit_code == 0

    insights = _invoke("insights", "--user-id", "u1", "--database-url", database_url)
    assert insights.exit_code == 0, insights.output
    assert "Spending decreased 85%" in insights.output
    assert "POSITIVE" in insights.output

    recurring = _invoke("recurring", "--user-id", "u1", "--database-url", database_url)
    assert recurring.exit_code == 0, recurring.output
    assert "Netflix.com" in recurring.output
    assert "Starbucks" in recurring.output

    report = _invoke("report", "--user-id", "u1", "--database-url", database_url)
    assert report.exit_code == 0, report.output
    assert "Statements: 1" in report.output
    assert "Transactions: 15" in report.output
    assert "Date range: 2024-01-03 to 2024-03-22" in report.output


def test_insights_for_user_without_data(database_url):
    result = _invoke("insights", "--user-id", "ghost", "--database-url", database_url)
    assert result.exit_code == 0
    assert "No insights for user ghost" in result.output


def test_database_url_loaded_from_dotenv(database_url):
    # conftest runs each test from an empty temporary directory
    Path.cwd().joinpath(".env").write_text(f"DATABASE_URL={database_url}\n", encoding="utf-8")

    result = _invoke("insights", "--user-id", "u1", "--regenerate")
    assert result.exit_code == 0, result.output
    assert "No insights for user u1" in result.output


def test_missing_database_url_is_reported():
    result = _invoke("report", "--user-id", "u1")
    assert result.exit_code == 1
    assert "Error: DATABASE_URL is not set" in result.output


def test_delete_statement_command(database_url):
    ingest = _ingest(database_url)
    statement_id = next(
        line.split(": ", 1)[1]
        for line in ingest.output.splitlines()
        if line.startswith("Statement: ")
    )

    missing = _invoke(
        "delete-statement",
        "--statement-id",
        "missing",
        "--user-id",
        "u1",
        "--database-url",
        database_url,
    )
    assert missing.exit_code == 1
    assert "Error: Statement not found: missing" in missing.output

    result = _invoke(
        "delete-statement",
        "--statement-id",
        statement_id,
        "--user-id",
        "u1",
        "--database-url",
        database_url,
    )
    assert result.exit_code == 0, result.output
    assert f"Deleted statement {statement_id}; 0 insights regenerated" in result.output
