"""
Pydantic schemas for API request/response validation.
"""

from flag_retention.schemas.retention import (
    AdminClearRequest,
    AdminClearResponse,
    AgeClearRequest,
    CleanupTickResponse,
    FlagTypeCountsResponse,
    GlobalSettingsResponse,
    GlobalSettingsUpdateRequest,
    PolicyOverviewItem,
    PolicyResponse,
    PolicyUpdateRequest,
    StatisticsResponse,
    UserClearRequest,
    UserClearResponse,
    UserFlagCountsResponse,
)

__all__ = [
    "AdminClearRequest",
    "AdminClearResponse",
    "AgeClearRequest",
    "CleanupTickResponse",
    "FlagTypeCountsResponse",
    "GlobalSettingsResponse",
    "GlobalSettingsUpdateRequest",
    "PolicyOverviewItem",
    "PolicyResponse",
    "PolicyUpdateRequest",
    "StatisticsResponse",
    "UserClearRequest",
    "UserClearResponse",
    "UserFlagCountsResponse",
]
