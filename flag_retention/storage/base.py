# flag_retention/storage/base.py
"""
Flagging store interface.

Design principles:
- The store owns flagging records; retention never creates or edits them
- Every delete goes through the store's authoritative path so store-side
  side effects (ORM events, reference cleanup) run
- Deleting an ID that is already gone is a no-op, not an error
- Aggregates always reflect the current state of storage
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional


@dataclass(frozen=True)
class FlagRecord:
    """Read-only view of one flagging."""
    id: int
    flag_type_id: str
    owner_id: str
    created_at: datetime


@dataclass(frozen=True)
class FlagTypeCounts:
    """Aggregate counts for one flag type."""
    total_count: int = 0
    unique_owner_count: int = 0


class FlaggingStore(ABC):
    """
    Abstract interface for the flagging record store.

    Implementations must handle:
    - Filtered selection, oldest first
    - Authoritative bulk delete that tolerates missing IDs
    - Grouped aggregate counts
    """

    @abstractmethod
    def select(
        self,
        flag_type_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        created_before: Optional[datetime] = None,
        flag_type_ids: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> list[FlagRecord]:
        """
        Select flaggings matching every given filter.

        Args:
            flag_type_id: Only this flag type
            owner_id: Only flaggings created by this owner
            created_before: Only flaggings with created_at strictly earlier
            flag_type_ids: Only these flag types (empty = nothing matches)
            limit: Max records to return

        Returns:
            Records ordered by created_at, then id (oldest first)
        """
        pass

    @abstractmethod
    def delete_many(self, ids: list[int]) -> int:
        """
        Delete flaggings by ID through the authoritative path.

        Returns:
            Number of flaggings this call actually removed. IDs that no
            longer exist are skipped.

        Raises:
            Any storage error, after rolling the whole call back.
        """
        pass

    @abstractmethod
    def count_by_type(self, flag_type_id: Optional[str] = None) -> dict[str, FlagTypeCounts]:
        """Total and distinct-owner counts grouped by flag type."""
        pass

    @abstractmethod
    def count_by_owner(
        self,
        owner_id: str,
        flag_type_ids: Optional[Iterable[str]] = None,
    ) -> dict[str, int]:
        """Per-flag-type counts for one owner, optionally limited to some types."""
        pass

    @abstractmethod
    def list_flag_types(self) -> list[str]:
        """Flag types that currently have at least one flagging, sorted."""
        pass
