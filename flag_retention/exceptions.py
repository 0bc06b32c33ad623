# flag_retention/exceptions.py
"""
Domain exceptions for flag retention.

Routers translate these into HTTP errors; the CLI prints them and exits 1.
"""

from typing import Optional


class FlagRetentionError(Exception):
    """Base exception for flag retention."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class PolicyNotFound(FlagRetentionError):
    """
    A flag type has no stored policy.

    Never raised by RetentionPolicyStore.get(), which falls back to the
    global default instead.
    """
    pass


class InvalidPolicyValue(FlagRetentionError):
    """Negative retention days, non-positive batch size or an unknown setting."""
    pass


class AccessDenied(FlagRetentionError):
    """Flag type is outside the allow-list for user-facing operations."""

    def __init__(self, flag_type_id: str):
        super().__init__(
            f"Flag type '{flag_type_id}' is not available for clearing",
            details={"flag_type_id": flag_type_id},
        )
        self.flag_type_id = flag_type_id


class DeletionFailed(FlagRetentionError):
    """
    The flagging store failed during a delete call.

    The whole call was rolled back, so nothing from it was deleted.
    """

    def __init__(self, message: str, flag_type_id: Optional[str] = None, requested: int = 0):
        super().__init__(
            message,
            details={"flag_type_id": flag_type_id, "requested": requested},
        )
        self.flag_type_id = flag_type_id
        self.requested = requested
