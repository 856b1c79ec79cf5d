"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the statement/transaction/insight models used by
``statement_insights``.
"""

from .finance import Base, SiInsight, SiStatement, SiTransaction

__all__ = [
    "Base",
    "SiInsight",
    "SiStatement",
    "SiTransaction",
]
