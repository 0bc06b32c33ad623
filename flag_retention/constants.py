# flag_retention/constants.py
"""
Centralized magic constants organized by domain.

All hardcoded numbers/strings used throughout the codebase should be
defined here with documentation explaining their purpose.
"""


class RetentionDefaults:
    """Fallback values for global retention settings."""

    GLOBAL_RETENTION_DAYS = 0           # 0 = keep forever
    CRON_BATCH_SIZE = 100               # Flaggings deleted per cleanup tick
    MAX_CRON_BATCH_SIZE = 1000          # Upper bound accepted by the admin API
    SECONDS_PER_DAY = 86400


class StoreLimits:
    """Limits applied when talking to the flagging store."""

    DELETE_CHUNK_SIZE = 500             # IDs per load/delete round-trip (keeps IN lists bounded)


class ConfigKeys:
    """Keys of the flag_retention_config key/value table."""

    GLOBAL_RETENTION_DAYS = "global_retention_days"
    CRON_BATCH_SIZE = "cron_batch_size"
    ENABLE_USER_CLEARING = "enable_user_clearing"
    LOG_CLEARING_ACTIVITY = "log_clearing_activity"
    FLAG_ACCESS_MODE = "flag_access_mode"
    ENABLED_FLAGS = "enabled_flags"
    ITEM_TERM_SINGULAR = "item_term_singular"
    ITEM_TERM_PLURAL = "item_term_plural"
    CLEAR_ACTION_TERM = "clear_action_term"
    CLEARED_TERM = "cleared_term"


class Terminology:
    """Default user-facing words for the clear result message."""

    ITEM_SINGULAR = "item"
    ITEM_PLURAL = "items"
    CLEAR_ACTION = "clear"
