# flag_retention/services/expiry_selector.py
"""Select flaggings that have outlived their retention period."""

import logging
from datetime import datetime, timedelta

from flag_retention.constants import RetentionDefaults
from flag_retention.storage.base import FlaggingStore

logger = logging.getLogger(__name__)


def expiry_cutoff(now: datetime, retention_days: int) -> datetime:
    """Flaggings created strictly before this moment are expired."""
    return now - timedelta(seconds=retention_days * RetentionDefaults.SECONDS_PER_DAY)


class ExpirySelector:
    """Resolves expired flagging IDs against the flagging store."""

    def __init__(self, store: FlaggingStore):
        self.store = store

    def select_expired(
        self,
        flag_type_id: str,
        retention_days: int,
        now: datetime,
        limit: int,
    ) -> list[int]:
        """
        IDs of flaggings of this type created before now - retention_days.

        Oldest first (ties broken by id) and capped at `limit`, so a backlog
        drains in creation order across ticks. retention_days == 0 means
        keep forever and selects nothing.
        """
        if retention_days <= 0 or limit <= 0:
            return []

        cutoff = expiry_cutoff(now, retention_days)
        records = self.store.select(
            flag_type_id=flag_type_id,
            created_before=cutoff,
            limit=limit,
        )

        # Unique and order-preserving even if the store returns duplicates
        ids = list(dict.fromkeys(record.id for record in records))[:limit]

        logger.debug(f"Selected {len(ids)} expired '{flag_type_id}' flaggings (cutoff {cutoff.isoformat()})")
        return ids
