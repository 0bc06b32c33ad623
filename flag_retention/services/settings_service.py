# flag_retention/services/settings_service.py
"""
Global retention defaults.

Admin-editable values live as JSON-encoded key/value rows in the
flag_retention_config table. Missing keys fall back to environment
settings, then to constants. Callers load one GlobalDefaults snapshot per
operation and pass it down; nothing re-reads config mid-operation.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flag_retention.config import Settings, get_settings
from flag_retention.constants import ConfigKeys, RetentionDefaults, Terminology
from flag_retention.exceptions import InvalidPolicyValue
from flag_retention.models import FlagAccessMode, FlagRetentionConfig
from flag_retention.services.sql_utils import upsert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalDefaults:
    """Snapshot of global retention settings for one operation."""

    default_retention_days: int = RetentionDefaults.GLOBAL_RETENTION_DAYS
    cron_batch_size: int = RetentionDefaults.CRON_BATCH_SIZE
    user_clearing_enabled: bool = False
    flag_access_mode: FlagAccessMode = FlagAccessMode.ALLOW_ALL
    enabled_flag_ids: frozenset[str] = field(default_factory=frozenset)
    log_clearing_activity: bool = False
    item_term_singular: str = Terminology.ITEM_SINGULAR
    item_term_plural: str = Terminology.ITEM_PLURAL
    clear_action_term: str = Terminology.CLEAR_ACTION
    cleared_term: Optional[str] = None    # past tense; derived from clear_action_term when unset

    def to_dict(self) -> dict:
        data = asdict(self)
        data["flag_access_mode"] = self.flag_access_mode.value
        data["enabled_flag_ids"] = sorted(self.enabled_flag_ids)
        return data


# GlobalDefaults field -> config table key
FIELD_KEYS = {
    "default_retention_days": ConfigKeys.GLOBAL_RETENTION_DAYS,
    "cron_batch_size": ConfigKeys.CRON_BATCH_SIZE,
    "user_clearing_enabled": ConfigKeys.ENABLE_USER_CLEARING,
    "flag_access_mode": ConfigKeys.FLAG_ACCESS_MODE,
    "enabled_flag_ids": ConfigKeys.ENABLED_FLAGS,
    "log_clearing_activity": ConfigKeys.LOG_CLEARING_ACTIVITY,
    "item_term_singular": ConfigKeys.ITEM_TERM_SINGULAR,
    "item_term_plural": ConfigKeys.ITEM_TERM_PLURAL,
    "clear_action_term": ConfigKeys.CLEAR_ACTION_TERM,
    "cleared_term": ConfigKeys.CLEARED_TERM,
}


def _coerce(field_name: str, value: Any) -> Any:
    """Validate and normalize one GlobalDefaults value."""
    if field_name in ("default_retention_days", "cron_batch_size"):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidPolicyValue(f"{field_name} must be an integer", {field_name: value})
        minimum = 0 if field_name == "default_retention_days" else 1
        if value < minimum:
            raise InvalidPolicyValue(f"{field_name} must be >= {minimum}", {field_name: value})
        return value

    if field_name in ("user_clearing_enabled", "log_clearing_activity"):
        if not isinstance(value, bool):
            raise InvalidPolicyValue(f"{field_name} must be a boolean", {field_name: value})
        return value

    if field_name == "flag_access_mode":
        try:
            return FlagAccessMode(value)
        except ValueError as e:
            raise InvalidPolicyValue(
                f"Unknown flag access mode '{value}'",
                {"allowed": [mode.value for mode in FlagAccessMode]},
            ) from e

    if field_name == "enabled_flag_ids":
        if not isinstance(value, (list, tuple, set, frozenset)) or not all(
            isinstance(v, str) and v for v in value
        ):
            raise InvalidPolicyValue("enabled_flag_ids must be a list of flag type IDs", {field_name: value})
        return frozenset(value)

    if field_name in ("item_term_singular", "item_term_plural", "clear_action_term", "cleared_term"):
        if not isinstance(value, str) or not value.strip():
            raise InvalidPolicyValue(f"{field_name} must be a non-empty string", {field_name: value})
        return value.strip()

    raise InvalidPolicyValue(f"Unknown setting '{field_name}'")


def _encode(value: Any) -> str:
    if isinstance(value, FlagAccessMode):
        return json.dumps(value.value)
    if isinstance(value, frozenset):
        return json.dumps(sorted(value))
    return json.dumps(value)


def _read_config_rows(db: Session) -> dict[str, Any]:
    """Decode every stored config value. Undecodable rows are ignored."""
    values = {}
    for row in db.query(FlagRetentionConfig).all():
        try:
            values[row.key] = json.loads(row.value)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring undecodable config value for '{row.key}'")
    return values


def load_global_defaults(db: Session, settings: Optional[Settings] = None) -> GlobalDefaults:
    """
    Load the global defaults snapshot.

    Stored values win over environment settings. A stored value that fails
    validation is logged and replaced by its fallback.
    """
    settings = settings or get_settings()
    fallback = GlobalDefaults(
        default_retention_days=settings.DEFAULT_RETENTION_DAYS,
        cron_batch_size=settings.CRON_BATCH_SIZE,
    )

    stored = _read_config_rows(db)
    overrides = {}
    for field_name, key in FIELD_KEYS.items():
        if key not in stored:
            continue
        try:
            overrides[field_name] = _coerce(field_name, stored[key])
        except InvalidPolicyValue as e:
            logger.warning(f"Ignoring stored config '{key}': {e.message}")

    return replace(fallback, **overrides)


def save_global_defaults(
    db: Session,
    updates: dict[str, Any],
    settings: Optional[Settings] = None,
) -> GlobalDefaults:
    """
    Validate and persist changes to the global defaults.

    Only fields present in `updates` are written. All values are validated
    before anything is stored.

    Raises:
        InvalidPolicyValue: a value is out of range or the field is unknown
    """
    unknown = set(updates) - set(FIELD_KEYS)
    if unknown:
        raise InvalidPolicyValue(f"Unknown settings: {', '.join(sorted(unknown))}")

    coerced = {name: _coerce(name, value) for name, value in updates.items()}
    if not coerced:
        return load_global_defaults(db, settings)

    now = datetime.utcnow()
    try:
        for field_name, value in coerced.items():
            upsert(
                db,
                FlagRetentionConfig,
                values={"key": FIELD_KEYS[field_name], "value": _encode(value), "updated_at": now},
                conflict_columns=["key"],
                update_columns=["value", "updated_at"],
            )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"Updated global retention settings: {', '.join(sorted(coerced))}")
    return load_global_defaults(db, settings)
