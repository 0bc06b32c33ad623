"""
Flagging store providers.

Supports:
- SqlFlaggingStore: flaggings table through the SQLAlchemy ORM
"""

from sqlalchemy.orm import Session

from flag_retention.storage.base import FlaggingStore, FlagRecord, FlagTypeCounts
from flag_retention.storage.sql_provider import SqlFlaggingStore


def get_flagging_store(db: Session) -> FlaggingStore:
    """Build the flagging store bound to a session."""
    return SqlFlaggingStore(db)


__all__ = [
    "FlaggingStore",
    "FlagRecord",
    "FlagTypeCounts",
    "SqlFlaggingStore",
    "get_flagging_store",
]
