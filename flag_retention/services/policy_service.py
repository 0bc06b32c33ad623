# flag_retention/services/policy_service.py
"""
Retention policy management service.

Stores one retention policy per flag type. A flag type without a stored
row behaves as if it had the global default policy with auto-clear off,
so lookups never fail with "not found".
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flag_retention.exceptions import InvalidPolicyValue
from flag_retention.models import FlagRetentionSetting
from flag_retention.services.clock import Clock, SystemClock
from flag_retention.services.settings_service import GlobalDefaults
from flag_retention.services.sql_utils import upsert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionPolicy:
    """Effective retention policy for one flag type."""

    flag_type_id: str
    retention_days: int
    auto_clear: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_default: bool = False            # True when synthesized from GlobalDefaults

    @property
    def expires(self) -> bool:
        """Whether the policy can ever select anything for deletion."""
        return self.retention_days > 0


def validate_policy_values(flag_type_id: str, retention_days: int) -> None:
    """Reject values that must never reach the policy table."""
    if not isinstance(flag_type_id, str) or not flag_type_id.strip():
        raise InvalidPolicyValue("flag_type_id must be a non-empty string")
    if isinstance(retention_days, bool) or not isinstance(retention_days, int):
        raise InvalidPolicyValue(
            "retention_days must be an integer",
            {"flag_type_id": flag_type_id, "retention_days": retention_days},
        )
    if retention_days < 0:
        raise InvalidPolicyValue(
            f"retention_days must be >= 0 (got {retention_days})",
            {"flag_type_id": flag_type_id, "retention_days": retention_days},
        )


def _to_policy(row: FlagRetentionSetting) -> RetentionPolicy:
    return RetentionPolicy(
        flag_type_id=row.flag_type_id,
        retention_days=row.retention_days,
        auto_clear=bool(row.auto_clear),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class RetentionPolicyStore:
    """Per-flag-type retention policies backed by flag_retention_settings."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()

    def _get_row(self, flag_type_id: str) -> Optional[FlagRetentionSetting]:
        return (
            self.db.query(FlagRetentionSetting)
            .filter(FlagRetentionSetting.flag_type_id == flag_type_id)
            .first()
        )

    def get(self, flag_type_id: str, defaults: GlobalDefaults) -> RetentionPolicy:
        """
        Get the retention policy for a flag type.

        Falls back to the global default retention with auto-clear off when
        no policy is stored.
        """
        row = self._get_row(flag_type_id)
        if row is None:
            return RetentionPolicy(
                flag_type_id=flag_type_id,
                retention_days=defaults.default_retention_days,
                auto_clear=False,
                is_default=True,
            )
        return _to_policy(row)

    def save(self, flag_type_id: str, retention_days: int, auto_clear: bool) -> RetentionPolicy:
        """
        Insert or update the policy for a flag type.

        A single INSERT ... ON CONFLICT DO UPDATE against the unique
        flag_type_id constraint, so concurrent saves for the same type end
        with one row. created_at is only written on first insert.

        Raises:
            InvalidPolicyValue: empty flag type or negative retention days
        """
        validate_policy_values(flag_type_id, retention_days)

        now = self.clock.now()
        try:
            upsert(
                self.db,
                FlagRetentionSetting,
                values={
                    "flag_type_id": flag_type_id,
                    "retention_days": retention_days,
                    "auto_clear": bool(auto_clear),
                    "created_at": now,
                    "updated_at": now,
                },
                conflict_columns=["flag_type_id"],
                update_columns=["retention_days", "auto_clear", "updated_at"],
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        # The upsert bypassed the identity map; make sure we read the new row.
        self.db.expire_all()
        policy = _to_policy(self._get_row(flag_type_id))

        logger.info(
            f"Saved retention policy for '{flag_type_id}': "
            f"{retention_days} days, auto_clear={bool(auto_clear)}"
        )
        return policy

    def delete(self, flag_type_id: str) -> bool:
        """
        Remove the stored policy so the flag type falls back to the default.

        Returns True if a row was removed.
        """
        row = self._get_row(flag_type_id)
        if row is None:
            return False

        try:
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Reset retention policy for '{flag_type_id}' to default")
        return True

    def list_all_auto_clear_enabled(self) -> dict[str, int]:
        """
        Map flag_type_id -> retention_days for every policy the scheduler acts on.

        Policies with retention_days == 0 keep records forever and are left
        out. Ordered by flag_type_id so one tick walks them in a stable order.
        """
        rows = (
            self.db.query(FlagRetentionSetting.flag_type_id, FlagRetentionSetting.retention_days)
            .filter(
                FlagRetentionSetting.auto_clear.is_(True),
                FlagRetentionSetting.retention_days > 0,
            )
            .order_by(FlagRetentionSetting.flag_type_id)
            .all()
        )
        return {flag_type_id: retention_days for flag_type_id, retention_days in rows}

    def list_policies(
        self,
        flag_type_ids: Iterable[str],
        defaults: GlobalDefaults,
    ) -> list[RetentionPolicy]:
        """
        Effective policy for every known flag type.

        Covers the given flag types plus any type that has a stored policy,
        sorted by flag_type_id.
        """
        stored = {
            row.flag_type_id: _to_policy(row)
            for row in self.db.query(FlagRetentionSetting).all()
        }

        policies = []
        for flag_type_id in sorted(set(flag_type_ids) | set(stored)):
            policy = stored.get(flag_type_id)
            if policy is None:
                policy = RetentionPolicy(
                    flag_type_id=flag_type_id,
                    retention_days=defaults.default_retention_days,
                    auto_clear=False,
                    is_default=True,
                )
            policies.append(policy)
        return policies
