# flag_retention/auth.py
"""Shared authentication dependencies."""

import os
import secrets

from fastapi import Header, HTTPException


def is_valid_admin_key(x_api_key: str | None) -> bool:
    expected_key = os.getenv("ADMIN_API_KEY")
    return bool(expected_key and x_api_key and secrets.compare_digest(x_api_key, expected_key))


def require_admin_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    """Validate admin API key. Fails closed if ADMIN_API_KEY is not set."""
    if not os.getenv("ADMIN_API_KEY"):
        raise HTTPException(
            status_code=500,
            detail="Server misconfiguration: admin authentication not configured",
        )

    if not is_valid_admin_key(x_api_key):
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API key",
        )


def require_owner_or_admin(
    owner_id: str,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> bool:
    """
    Allow a user to act on their own flaggings, or an admin on anyone's.

    Returns True when the caller authenticated as admin.
    """
    if is_valid_admin_key(x_api_key):
        return True

    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    if x_user_id != owner_id:
        raise HTTPException(status_code=403, detail="You can only clear your own flags")

    return False
