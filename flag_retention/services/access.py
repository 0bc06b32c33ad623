# flag_retention/services/access.py
"""
Flag type allow-list for user-facing operations.

In ALLOW_SELECTED mode, user-facing counts and clears only ever touch the
enabled flag types, and the filter is applied before any query runs. Admin
bulk clears by type do not go through this filter.
"""

from dataclasses import dataclass, field
from typing import Optional

from flag_retention.exceptions import AccessDenied
from flag_retention.models import FlagAccessMode
from flag_retention.services.settings_service import GlobalDefaults


@dataclass(frozen=True)
class FlagAccessFilter:
    mode: FlagAccessMode = FlagAccessMode.ALLOW_ALL
    enabled_flag_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_defaults(cls, defaults: GlobalDefaults) -> "FlagAccessFilter":
        return cls(mode=defaults.flag_access_mode, enabled_flag_ids=defaults.enabled_flag_ids)

    def is_allowed(self, flag_type_id: str) -> bool:
        if self.mode == FlagAccessMode.ALLOW_ALL:
            return True
        return flag_type_id in self.enabled_flag_ids

    def require(self, flag_type_id: str) -> None:
        """Raise AccessDenied unless the flag type is allowed."""
        if not self.is_allowed(flag_type_id):
            raise AccessDenied(flag_type_id)

    def allowed_flag_ids(self) -> Optional[frozenset[str]]:
        """The allow-list, or None when every flag type is allowed."""
        if self.mode == FlagAccessMode.ALLOW_ALL:
            return None
        return self.enabled_flag_ids
