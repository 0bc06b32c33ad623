# flag_retention/services/statistics_service.py
"""
Flagging statistics.

Counts are recomputed from storage on every call and never cached, so
callers can compare before/after a clear and decide whether an operation
would be a no-op.
"""

from typing import Optional

from flag_retention.services.access import FlagAccessFilter
from flag_retention.services.settings_service import GlobalDefaults
from flag_retention.storage.base import FlaggingStore, FlagTypeCounts


class StatisticsAggregator:
    """Aggregate counts over the flagging store."""

    def __init__(self, store: FlaggingStore):
        self.store = store

    def counts_by_type(self, flag_type_id: Optional[str] = None) -> dict[str, FlagTypeCounts]:
        """
        Total and unique-owner counts per flag type.

        With a flag type, returns exactly that entry, zero-valued when the
        type has no flaggings.
        """
        counts = self.store.count_by_type(flag_type_id)
        if flag_type_id is not None:
            return {flag_type_id: counts.get(flag_type_id, FlagTypeCounts())}
        return counts

    def counts_by_owner(
        self,
        owner_id: str,
        defaults: GlobalDefaults,
        flag_type_id: Optional[str] = None,
    ) -> dict[str, int]:
        """
        Per-flag-type counts of what an owner could clear.

        Flag types outside the allow-list are never queried. Asking for one
        explicitly returns a zero entry.
        """
        access = FlagAccessFilter.from_defaults(defaults)

        if flag_type_id is not None:
            if not access.is_allowed(flag_type_id):
                return {flag_type_id: 0}
            counts = self.store.count_by_owner(owner_id, [flag_type_id])
            return {flag_type_id: counts.get(flag_type_id, 0)}

        return self.store.count_by_owner(owner_id, access.allowed_flag_ids())

    def total_for_owner(self, owner_id: str, defaults: GlobalDefaults) -> int:
        """Everything the owner could clear right now."""
        return sum(self.counts_by_owner(owner_id, defaults).values())
