"""Pytest configuration for test isolation.

Settings are read from the process environment, and the CLI loads a ``.env``
from the working directory. An autouse fixture clears every variable the
package consults so a developer's shell or ``.env`` cannot leak into tests, and
runs each test from its own temporary directory.

Engines are cached per database URL in ``db.client``; they are disposed after
every test so file-backed SQLite databases are released. Package logging is
reset as well, since the CLI attaches a handler to whatever stream was current
when it ran.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from db.client import dispose_engines

import statement_insights.logging_setup as logging_setup

_ENV_VARS = (
    "DATABASE_URL",
    "STATEMENT_INSIGHTS_LOG_LEVEL",
    "SI_MAX_UPLOAD_BYTES",
    "SI_MAX_REPORTED_ROW_ERRORS",
    "SI_RECURRING_RESET_STALE",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


@pytest.fixture(autouse=True)
def _reset_db_and_logging():
    yield
    dispose_engines()
    pkg_logger = logging.getLogger(logging_setup.PACKAGE_LOGGER)
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    pkg_logger.propagate = True
    logging_setup._handler = None


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    from tests.helpers.db import bootstrap_sqlite_db

    return bootstrap_sqlite_db(tmp_path / "db" / "test.sqlite3")
