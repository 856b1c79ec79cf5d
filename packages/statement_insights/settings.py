"""Runtime settings read from the environment.

All knobs are plain environment variables (a local ``.env`` is loaded by the
CLI via ``python-dotenv`` before this module is consulted):

- ``DATABASE_URL``: SQLAlchemy URL; required by anything that persists.
- ``SI_MAX_UPLOAD_BYTES``: upload size ceiling (default 10 MiB).
- ``SI_MAX_REPORTED_ROW_ERRORS``: how many row errors an ingest summary
  carries (default 10). The full count is always reported.
- ``SI_RECURRING_RESET_STALE``: when truthy, recurring detection clears a
  user's existing flags before recomputing them (default off).

Malformed values fall back to the defaults rather than failing startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_REPORTED_ROW_ERRORS = 10

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str | None = None
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_reported_row_errors: int = DEFAULT_MAX_REPORTED_ROW_ERRORS
    recurring_reset_stale: bool = False


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    return default


def load_settings() -> Settings:
    """Snapshot the current environment into a :class:`Settings`."""

    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        max_upload_bytes=_env_positive_int("SI_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        max_reported_row_errors=_env_positive_int(
            "SI_MAX_REPORTED_ROW_ERRORS", DEFAULT_MAX_REPORTED_ROW_ERRORS
        ),
        recurring_reset_stale=_env_bool("SI_RECURRING_RESET_STALE", False),
    )


__all__ = ["Settings", "load_settings"]
