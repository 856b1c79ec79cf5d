from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text

from db import Base

_ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "libs" / "db" / "alembic"


def _config(url: str) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(_ALEMBIC_DIR))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


@pytest.fixture
def migrated_url(tmp_path, monkeypatch):
    url = f"sqlite+pysqlite:///{tmp_path / 'migrated.sqlite3'}"
    monkeypatch.setenv("DATABASE_URL", url)
    command.upgrade(_config(url), "head")
    return url


def test_upgrade_creates_orm_tables(migrated_url):
    engine = create_engine(migrated_url)
    try:
        insp = inspect(engine)
        for table in Base.metadata.sorted_tables:
            columns = {c["name"] for c in insp.get_columns(table.name)}
            assert columns == {c.name for c in table.columns}, table.name

        fks = insp.get_foreign_keys("si_transactions")
        assert [(fk["referred_table"], fk["options"].get("ondelete")) for fk in fks] == [
            ("si_statements", "CASCADE")
        ]
    finally:
        engine.dispose()


def test_check_constraints_enforced_after_upgrade(migrated_url):
    engine = create_engine(migrated_url)
    try:
        with engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO si_statements (id, user_id, original_name, file_type, "
                    "file_hash, row_count, status) "
                    "VALUES ('s1', 'u1', 'a.csv', 'csv', :h, 0, 'completed')"
                ),
                {"h": "0" * 64},
            )
        with pytest.raises(Exception, match="CHECK constraint failed"):
            with engine.begin() as conn:
                conn.execute(
                    text(
                        "INSERT INTO si_transactions (id, user_id, statement_id, date, "
                        "description, merchant, amount, kind, category, is_recurring, "
                        "raw_record) VALUES ('t1', 'u1', 's1', '2024-01-01', 'x', 'x', "
                        "-1, 'debit', 'dining', 0, '{}')"
                    )
                )
    finally:
        engine.dispose()


def test_downgrade_drops_tables(migrated_url):
    command.downgrade(_config(migrated_url), "base")
    engine = create_engine(migrated_url)
    try:
        tables = set(inspect(engine).get_table_names())
        assert not tables & {t.name for t in Base.metadata.sorted_tables}
    finally:
        engine.dispose()
