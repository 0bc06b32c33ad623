# flag_retention/services/__init__.py
"""
Retention services for flaggings.

Services:
- policy_service: Per-flag-type retention policy store
- expiry_selector: Which flaggings have expired
- batch_deleter: Deletion by ID, owner, type or age
- statistics_service: Aggregate counts
- cleanup_scheduler: One periodic cleanup tick
- settings_service: Global defaults snapshot
- user_clear_service: "Clear my items"
"""

from flag_retention.services.access import FlagAccessFilter
from flag_retention.services.batch_deleter import BatchDeleter
from flag_retention.services.cleanup_scheduler import CleanupScheduler, TickResult, build_cleanup_scheduler
from flag_retention.services.clock import Clock, SystemClock
from flag_retention.services.expiry_selector import ExpirySelector, expiry_cutoff
from flag_retention.services.policy_service import RetentionPolicy, RetentionPolicyStore
from flag_retention.services.settings_service import GlobalDefaults, load_global_defaults, save_global_defaults
from flag_retention.services.statistics_service import StatisticsAggregator
from flag_retention.services.user_clear_service import ClearResult, clear_user_flags, format_clear_message

__all__ = [
    # Policy
    "RetentionPolicy",
    "RetentionPolicyStore",
    # Expiry
    "ExpirySelector",
    "expiry_cutoff",
    # Deletion
    "BatchDeleter",
    "ClearResult",
    "clear_user_flags",
    "format_clear_message",
    # Statistics
    "StatisticsAggregator",
    # Scheduling
    "CleanupScheduler",
    "TickResult",
    "build_cleanup_scheduler",
    # Config / access
    "GlobalDefaults",
    "load_global_defaults",
    "save_global_defaults",
    "FlagAccessFilter",
    "Clock",
    "SystemClock",
]
