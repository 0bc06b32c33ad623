# flag_retention/services/batch_deleter.py
"""
Deletion of flaggings through the flagging store.

Every delete routes through FlaggingStore.delete_many, the store's
authoritative path. A storage failure rolls back the whole call and is
surfaced as DeletionFailed for the caller to log; it never escapes as a raw
storage error.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from flag_retention.exceptions import DeletionFailed, InvalidPolicyValue
from flag_retention.services.access import FlagAccessFilter
from flag_retention.services.expiry_selector import expiry_cutoff
from flag_retention.services.settings_service import GlobalDefaults
from flag_retention.storage.base import FlaggingStore

logger = logging.getLogger(__name__)


class BatchDeleter:
    """Deletes flaggings by ID, owner, type or age."""

    def __init__(self, store: FlaggingStore):
        self.store = store

    def delete_by_ids(self, ids: Iterable[int], flag_type_id: Optional[str] = None) -> int:
        """
        Delete flaggings by ID.

        Args:
            ids: Flagging IDs. Duplicates are collapsed.
            flag_type_id: Flag type the IDs belong to, for error reporting

        Returns:
            Number of flaggings actually removed. IDs deleted concurrently
            by someone else are not counted and are not an error.

        Raises:
            DeletionFailed: the store failed; nothing from this call was deleted
        """
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return 0

        try:
            deleted = self.store.delete_many(unique_ids)
        except Exception as e:
            raise DeletionFailed(
                f"Error deleting flaggings: {e}",
                flag_type_id=flag_type_id,
                requested=len(unique_ids),
            ) from e

        if deleted < len(unique_ids):
            logger.debug(f"{len(unique_ids) - deleted} of {len(unique_ids)} flaggings were already gone")
        return deleted

    def clear_by_owner(
        self,
        owner_id: str,
        defaults: GlobalDefaults,
        flag_type_id: Optional[str] = None,
    ) -> int:
        """
        Delete an owner's flaggings, optionally only of one flag type.

        Subject to the flag access allow-list: an explicit flag type outside
        it raises AccessDenied, and without a flag type only allowed types
        are cleared.
        """
        access = FlagAccessFilter.from_defaults(defaults)

        if flag_type_id is not None:
            access.require(flag_type_id)
            ids = self._select_ids(flag_type_id, owner_id=owner_id)
        else:
            ids = self._select_ids(None, owner_id=owner_id, flag_type_ids=access.allowed_flag_ids())

        return self.delete_by_ids(ids, flag_type_id=flag_type_id)

    def clear_by_type(self, flag_type_id: str) -> int:
        """Delete every flagging of a type regardless of age or owner. Admin only."""
        return self.delete_by_ids(self._select_ids(flag_type_id), flag_type_id=flag_type_id)

    def clear_older_than(self, flag_type_id: str, days_old: int, now: datetime) -> int:
        """
        Delete flaggings of a type created more than `days_old` days ago. Admin only.

        Raises:
            InvalidPolicyValue: days_old < 1
        """
        if isinstance(days_old, bool) or not isinstance(days_old, int) or days_old < 1:
            raise InvalidPolicyValue(
                "days_old must be an integer >= 1",
                {"flag_type_id": flag_type_id, "days_old": days_old},
            )

        ids = self._select_ids(flag_type_id, created_before=expiry_cutoff(now, days_old))
        return self.delete_by_ids(ids, flag_type_id=flag_type_id)

    def _select_ids(self, flag_type_id: Optional[str], **filters) -> list[int]:
        """Look up the IDs a clear should delete. A lookup failure fails the clear."""
        try:
            records = self.store.select(flag_type_id=flag_type_id, **filters)
        except Exception as e:
            raise DeletionFailed(
                f"Error selecting flaggings to delete: {e}",
                flag_type_id=flag_type_id,
            ) from e
        return [record.id for record in records]
