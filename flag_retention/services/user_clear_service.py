# flag_retention/services/user_clear_service.py
"""
User-initiated "clear my items".

Validates every requested flag type against the allow-list before deleting
anything, clears type by type so one failing type does not block the
others, and builds the short "N items cleared" message shown to the user.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from flag_retention.exceptions import DeletionFailed, InvalidPolicyValue
from flag_retention.services.access import FlagAccessFilter
from flag_retention.services.batch_deleter import BatchDeleter
from flag_retention.services.settings_service import GlobalDefaults

logger = logging.getLogger(__name__)


@dataclass
class ClearResult:
    """Outcome of an interactive clear."""

    deleted: int = 0
    cleared_flag_type_ids: list[str] = field(default_factory=list)
    failed_flag_type_ids: list[str] = field(default_factory=list)
    message: str = ""
    warning: Optional[str] = None

    @property
    def success(self) -> bool:
        return not self.failed_flag_type_ids


def cleared_term(defaults: GlobalDefaults) -> str:
    """
    Past tense of the clear action.

    Uses the configured cleared_term; without one the regular "-ed" form of
    clear_action_term is used, so irregular verbs need cleared_term set.
    """
    if defaults.cleared_term:
        return defaults.cleared_term
    action = defaults.clear_action_term
    if action.endswith("ed"):
        return action
    if action.endswith("e"):
        return f"{action}d"
    return f"{action}ed"


def format_clear_message(deleted: int, defaults: GlobalDefaults) -> str:
    """'3 items cleared', using the site's configured terminology."""
    noun = defaults.item_term_singular if deleted == 1 else defaults.item_term_plural
    return f"{deleted} {noun} {cleared_term(defaults)}"


def clear_user_flags(
    deleter: BatchDeleter,
    owner_id: str,
    defaults: GlobalDefaults,
    flag_type_ids: Optional[list[str]] = None,
    expected: int = 0,
) -> ClearResult:
    """
    Clear an owner's flaggings.

    Args:
        deleter: BatchDeleter bound to the flagging store
        owner_id: Whose flaggings to clear
        defaults: Global defaults snapshot (allow-list, terminology, logging)
        flag_type_ids: Flag types to clear; None clears every allowed type
        expected: How many items the caller believed existed, for the
            zero-result warning

    Raises:
        AccessDenied: a requested flag type is outside the allow-list
        InvalidPolicyValue: an empty list of flag types was given
    """
    result = ClearResult()
    access = FlagAccessFilter.from_defaults(defaults)

    if flag_type_ids is not None:
        if not flag_type_ids:
            raise InvalidPolicyValue(f"Select at least one type to {defaults.clear_action_term}")
        for flag_type_id in flag_type_ids:
            access.require(flag_type_id)
        targets: list[Optional[str]] = list(dict.fromkeys(flag_type_ids))
    else:
        targets = [None]

    for flag_type_id in targets:
        try:
            deleted = deleter.clear_by_owner(owner_id, defaults, flag_type_id=flag_type_id)
        except DeletionFailed as e:
            logger.error(f"Clearing flaggings for owner {owner_id} failed: {e.message}")
            result.failed_flag_type_ids.append(flag_type_id or "*")
            continue

        result.deleted += deleted
        if flag_type_id is not None:
            result.cleared_flag_type_ids.append(flag_type_id)

    if defaults.log_clearing_activity:
        logger.info(f"Owner {owner_id} cleared {result.deleted} flaggings")

    result.message = format_clear_message(result.deleted, defaults)
    if result.failed_flag_type_ids:
        result.warning = "Some items could not be cleared. Please try again later."
    elif result.deleted == 0 and expected > 0:
        result.warning = f"No {defaults.item_term_plural} were {cleared_term(defaults)}."

    return result
