"""DB helpers for tests: bootstrap a temporary SQLite DB and seed transactions."""

from __future__ import annotations

import os
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import TypeAlias

from db import Base
from db.client import get_engine, session_scope
from db.models.finance import SiStatement, SiTransaction
from sqlalchemy import text as sql_text

from statement_insights.categories import categorize, extract_merchant
from statement_insights.persistence import new_id

# (date, description, amount, kind); merchant/category are derived like the parser does
SeedRow: TypeAlias = tuple[date, str, str | Decimal, str]


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    _assert_schema_in_sync(url)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def seed_statement(
    *,
    database_url: str,
    user_id: str,
    rows: Iterable[SeedRow],
    file_hash: str | None = None,
) -> str:
    """Insert one completed statement with ``rows`` and return its id."""

    statement_id = new_id()
    rows = list(rows)
    with session_scope(database_url=database_url) as session:
        session.add(
            SiStatement(
                id=statement_id,
                user_id=user_id,
                original_name="seed.csv",
                file_type="csv",
                file_hash=file_hash or new_id().replace("-", "").ljust(64, "0"),
                row_count=len(rows),
                status="completed",
            )
        )
        for tx_date, description, amount, kind in rows:
            session.add(
                SiTransaction(
                    id=new_id(),
                    user_id=user_id,
                    statement_id=statement_id,
                    date=tx_date,
                    description=description,
                    merchant=extract_merchant(description),
                    amount=Decimal(str(amount)),
                    kind=kind,
                    category=str(categorize(description)),
                    is_recurring=False,
                    raw_record={"description": description},
                )
            )
    return statement_id


def _assert_schema_in_sync(database_url: str) -> None:
    """Quick sanity check: ORM column sets match the created SQLite tables."""

    with session_scope(database_url=database_url) as session:
        for table in Base.metadata.sorted_tables:
            rows = session.execute(sql_text(f"PRAGMA table_info('{table.name}')")).fetchall()
            got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
            expected = {c.name for c in table.columns}
            assert got == expected, (
                f"{table.name} schema drift: missing={expected - got}, extra={got - expected}"
            )
