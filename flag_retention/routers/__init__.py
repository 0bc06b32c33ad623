# flag_retention/routers/__init__.py
"""
API routers for admin and user endpoints.
"""

from flag_retention.routers.admin_retention import router as admin_retention_router
from flag_retention.routers.user_flags import router as user_flags_router

__all__ = [
    "admin_retention_router",
    "user_flags_router",
]
