# flag_retention/models.py
"""
Flag Retention Database Models

Tables:
- Flagging: User-created flag records (owned by the flagging store; this
  service only reads and deletes them)
- FlagRetentionSetting: Per-flag-type retention policy
- FlagRetentionConfig: Global retention defaults as key/value rows
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from flag_retention.database import Base


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class FlagAccessMode(str, Enum):
    """Which flag types end users may see and clear."""
    ALLOW_ALL = "allow_all"
    ALLOW_SELECTED = "allow_selected"


class TickState(str, Enum):
    """Lifecycle of a single cleanup tick."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    SKIPPED = "skipped"                 # Another tick was already running


# -----------------------------------------------------------------------------
# Flagging
# -----------------------------------------------------------------------------

class Flagging(Base):
    """
    A user's flag on a piece of content, under a named flag type.

    Rows are created elsewhere. Retention only selects and deletes them,
    and deletes always go through the ORM so mapper events fire.
    """
    __tablename__ = "flaggings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    flag_type_id = Column(String(64), nullable=False)   # e.g., "bookmark"
    owner_id = Column(String(64), nullable=False)       # User who flagged
    entity_type = Column(String(64), nullable=True)     # e.g., "node"
    entity_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_flaggings_type_created", "flag_type_id", "created_at"),
        Index("ix_flaggings_owner_type", "owner_id", "flag_type_id"),
    )

    def __repr__(self) -> str:
        return f"<Flagging {self.id} {self.flag_type_id} owner={self.owner_id}>"


# -----------------------------------------------------------------------------
# Retention settings
# -----------------------------------------------------------------------------

class FlagRetentionSetting(Base):
    """Retention policy for one flag type. Missing row = global default."""
    __tablename__ = "flag_retention_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    flag_type_id = Column(String(64), nullable=False)
    retention_days = Column(Integer, nullable=False, default=0)   # 0 = keep forever
    auto_clear = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("flag_type_id", name="uq_flag_retention_settings_flag_type_id"),
        Index("ix_flag_retention_settings_auto_clear", "auto_clear"),
    )


class FlagRetentionConfig(Base):
    """Global retention defaults. Values are JSON-encoded."""
    __tablename__ = "flag_retention_config"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
