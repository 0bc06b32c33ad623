# flag_retention/storage/sql_provider.py
"""
SQLAlchemy-backed flagging store.

Deletes load the ORM objects and remove them through the session, so
mapper events and relationship cascades run the same way they do for any
other delete in the application. A raw bulk DELETE would skip them.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from flag_retention.constants import StoreLimits
from flag_retention.models import Flagging
from flag_retention.storage.base import FlaggingStore, FlagRecord, FlagTypeCounts

logger = logging.getLogger(__name__)


class SqlFlaggingStore(FlaggingStore):
    """Flagging store on top of a SQLAlchemy session."""

    def __init__(self, db: Session, chunk_size: int = StoreLimits.DELETE_CHUNK_SIZE):
        self.db = db
        self.chunk_size = chunk_size

    def select(
        self,
        flag_type_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        created_before: Optional[datetime] = None,
        flag_type_ids: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> list[FlagRecord]:
        query = self.db.query(
            Flagging.id,
            Flagging.flag_type_id,
            Flagging.owner_id,
            Flagging.created_at,
        )

        if flag_type_id is not None:
            query = query.filter(Flagging.flag_type_id == flag_type_id)
        if flag_type_ids is not None:
            allowed = list(flag_type_ids)
            if not allowed:
                return []
            query = query.filter(Flagging.flag_type_id.in_(allowed))
        if owner_id is not None:
            query = query.filter(Flagging.owner_id == owner_id)
        if created_before is not None:
            query = query.filter(Flagging.created_at < created_before)

        query = query.order_by(Flagging.created_at.asc(), Flagging.id.asc())
        if limit is not None:
            query = query.limit(limit)

        try:
            rows = query.all()
        except Exception:
            self.db.rollback()
            raise

        return [
            FlagRecord(
                id=row.id,
                flag_type_id=row.flag_type_id,
                owner_id=row.owner_id,
                created_at=row.created_at,
            )
            for row in rows
        ]

    def delete_many(self, ids: list[int]) -> int:
        if not ids:
            return 0

        deleted = 0
        try:
            for start in range(0, len(ids), self.chunk_size):
                chunk = ids[start:start + self.chunk_size]

                # Rows another transaction is deleting are locked; skip them
                # rather than wait and then count them twice.
                flaggings = (
                    self.db.query(Flagging)
                    .filter(Flagging.id.in_(chunk))
                    .with_for_update(skip_locked=True)
                    .all()
                )
                for flagging in flaggings:
                    self.db.delete(flagging)
                self.db.flush()
                deleted += len(flaggings)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.debug(f"Deleted {deleted} of {len(ids)} requested flaggings")
        return deleted

    def count_by_type(self, flag_type_id: Optional[str] = None) -> dict[str, FlagTypeCounts]:
        query = self.db.query(
            Flagging.flag_type_id,
            func.count(Flagging.id),
            func.count(distinct(Flagging.owner_id)),
        )
        if flag_type_id is not None:
            query = query.filter(Flagging.flag_type_id == flag_type_id)

        rows = query.group_by(Flagging.flag_type_id).all()
        return {
            type_id: FlagTypeCounts(total_count=total or 0, unique_owner_count=owners or 0)
            for type_id, total, owners in rows
        }

    def count_by_owner(
        self,
        owner_id: str,
        flag_type_ids: Optional[Iterable[str]] = None,
    ) -> dict[str, int]:
        query = self.db.query(Flagging.flag_type_id, func.count(Flagging.id)).filter(
            Flagging.owner_id == owner_id
        )
        if flag_type_ids is not None:
            allowed = list(flag_type_ids)
            if not allowed:
                return {}
            query = query.filter(Flagging.flag_type_id.in_(allowed))

        rows = query.group_by(Flagging.flag_type_id).all()
        return {type_id: count for type_id, count in rows}

    def list_flag_types(self) -> list[str]:
        rows = self.db.query(Flagging.flag_type_id).distinct().order_by(Flagging.flag_type_id).all()
        return [row[0] for row in rows]
