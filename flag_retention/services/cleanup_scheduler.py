# flag_retention/services/cleanup_scheduler.py
"""
Periodic cleanup of expired flaggings.

One tick:
1. Loads the global defaults snapshot and every auto-clear policy
2. Selects expired flaggings per policy, sharing one deletion budget
   (cron_batch_size) across all policies
3. Deletes each batch; a failing flag type is recorded and the tick moves on
4. Ends COMPLETED, or PARTIALLY_FAILED if any flag type failed or the
   settings and policies could not be loaded

Ticks are expected not to overlap. Within one process a second tick that
starts while another is running is refused and reports SKIPPED; across
processes the external scheduler must serialize ticks.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from flag_retention.exceptions import DeletionFailed
from flag_retention.logging_config import log_stage
from flag_retention.models import TickState
from flag_retention.services.batch_deleter import BatchDeleter
from flag_retention.services.clock import Clock, SystemClock
from flag_retention.services.expiry_selector import ExpirySelector
from flag_retention.services.policy_service import RetentionPolicyStore
from flag_retention.services.settings_service import GlobalDefaults, load_global_defaults
from flag_retention.storage import get_flagging_store

logger = logging.getLogger(__name__)

# Held while a tick runs in this process
_tick_lock = threading.Lock()


@dataclass
class TickResult:
    """Result of one cleanup tick."""

    state: TickState
    total_deleted: int = 0
    failed_flag_type_ids: list[str] = field(default_factory=list)
    processed_flag_type_ids: list[str] = field(default_factory=list)
    deleted_by_type: dict[str, int] = field(default_factory=dict)
    batch_size: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state in (TickState.COMPLETED, TickState.SKIPPED)


class CleanupScheduler:
    """Runs cleanup ticks. The periodic trigger lives outside this class."""

    def __init__(
        self,
        policy_store: RetentionPolicyStore,
        selector: ExpirySelector,
        deleter: BatchDeleter,
        load_defaults: Callable[[], GlobalDefaults],
        clock: Optional[Clock] = None,
        lock: Optional[threading.Lock] = None,
    ):
        self.policy_store = policy_store
        self.selector = selector
        self.deleter = deleter
        self.load_defaults = load_defaults
        self.clock = clock or SystemClock()
        self.lock = lock or _tick_lock

    def run_tick(self) -> TickResult:
        """
        Run one cleanup tick.

        Never deletes more than cron_batch_size flaggings in total. Flag
        types left over once the budget is spent are picked up next tick.
        """
        if not self.lock.acquire(blocking=False):
            logger.warning(
                "Cleanup tick skipped: previous tick still running",
                extra={"event": "tick_skipped", "tick_state": TickState.SKIPPED.value},
            )
            now = self.clock.now()
            return TickResult(state=TickState.SKIPPED, started_at=now, finished_at=now)

        try:
            return self._run_locked()
        finally:
            self.lock.release()

    def _run_locked(self) -> TickResult:
        result = TickResult(state=TickState.RUNNING, started_at=self.clock.now())

        with log_stage("flag_cleanup"):
            try:
                defaults = self.load_defaults()
                policies = self.policy_store.list_all_auto_clear_enabled()
            except Exception as e:
                logger.error(
                    f"Loading cleanup settings failed: {e}",
                    extra={"event": "tick_setup_failed"},
                )
                result.errors.append(f"setup: {e}")
            else:
                result.batch_size = defaults.cron_batch_size
                self._clear_expired(result, defaults, policies)

        failed = result.failed_flag_type_ids or result.errors
        result.state = TickState.PARTIALLY_FAILED if failed else TickState.COMPLETED
        result.finished_at = self.clock.now()

        logger.info(
            f"Cleanup tick {result.state.value}: {result.total_deleted} deleted "
            f"across {len(result.deleted_by_type)} flag types "
            f"({len(result.failed_flag_type_ids)} failed)",
            extra={
                "event": "tick_complete",
                "tick_state": result.state.value,
                "items_deleted": result.total_deleted,
                "items_failed": len(result.failed_flag_type_ids),
                "batch_size": result.batch_size,
            },
        )
        return result

    def _clear_expired(self, result: TickResult, defaults: GlobalDefaults, policies: dict[str, int]) -> None:
        """Delete expired flaggings policy by policy within one shared budget."""
        now = self.clock.now()
        remaining = defaults.cron_batch_size

        for flag_type_id, retention_days in policies.items():
            if remaining <= 0:
                logger.debug(f"Cleanup budget spent; deferring '{flag_type_id}' and later types")
                break

            try:
                ids = self.selector.select_expired(flag_type_id, retention_days, now, remaining)
            except Exception as e:
                logger.error(
                    f"Selecting expired '{flag_type_id}' flaggings failed: {e}",
                    extra={"event": "select_failed", "flag_type_id": flag_type_id},
                )
                result.failed_flag_type_ids.append(flag_type_id)
                result.errors.append(f"{flag_type_id}: {e}")
                continue

            result.processed_flag_type_ids.append(flag_type_id)
            if not ids:
                continue

            try:
                deleted = self.deleter.delete_by_ids(ids, flag_type_id=flag_type_id)
            except DeletionFailed as e:
                logger.error(
                    f"Deleting expired '{flag_type_id}' flaggings failed: {e.message}",
                    extra={
                        "event": "delete_failed",
                        "flag_type_id": flag_type_id,
                        "items_requested": len(ids),
                    },
                )
                result.failed_flag_type_ids.append(flag_type_id)
                result.errors.append(f"{flag_type_id}: {e.message}")
                continue

            remaining -= deleted
            result.total_deleted += deleted
            result.deleted_by_type[flag_type_id] = deleted

            if defaults.log_clearing_activity:
                logger.info(
                    f"Cron cleanup deleted {deleted} expired '{flag_type_id}' flaggings",
                    extra={
                        "event": "flaggings_expired",
                        "flag_type_id": flag_type_id,
                        "items_requested": len(ids),
                        "items_deleted": deleted,
                    },
                )


def build_cleanup_scheduler(db: Session, clock: Optional[Clock] = None) -> CleanupScheduler:
    """Wire a scheduler to a database session."""
    clock = clock or SystemClock()
    store = get_flagging_store(db)
    return CleanupScheduler(
        policy_store=RetentionPolicyStore(db, clock=clock),
        selector=ExpirySelector(store),
        deleter=BatchDeleter(store),
        load_defaults=lambda: load_global_defaults(db),
        clock=clock,
    )
