# flag_retention/schemas/retention.py
"""
Schemas for flag retention endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from flag_retention.constants import RetentionDefaults
from flag_retention.models import FlagAccessMode, TickState

# -----------------------------------------------------------------------------
# Global settings
# -----------------------------------------------------------------------------


class GlobalSettingsResponse(BaseModel):
    """Global retention defaults currently in effect."""

    default_retention_days: int
    cron_batch_size: int
    user_clearing_enabled: bool
    flag_access_mode: FlagAccessMode
    enabled_flag_ids: list[str]
    log_clearing_activity: bool
    item_term_singular: str
    item_term_plural: str
    clear_action_term: str
    cleared_term: str | None = None


class GlobalSettingsUpdateRequest(BaseModel):
    """Partial update of global defaults. Omitted fields are left unchanged."""

    default_retention_days: int | None = Field(None, ge=0, description="Days to keep flags without a policy (0 = forever)")
    cron_batch_size: int | None = Field(
        None,
        ge=1,
        le=RetentionDefaults.MAX_CRON_BATCH_SIZE,
        description="Max flaggings deleted per cleanup tick",
    )
    user_clearing_enabled: bool | None = Field(None, description="Allow users to clear their own flags")
    flag_access_mode: FlagAccessMode | None = Field(None, description="allow_all or allow_selected")
    enabled_flag_ids: list[str] | None = Field(None, description="Flag types users may see and clear")
    log_clearing_activity: bool | None = Field(None, description="Log clears for auditing")
    item_term_singular: str | None = Field(None, min_length=1, max_length=64)
    item_term_plural: str | None = Field(None, min_length=1, max_length=64)
    clear_action_term: str | None = Field(None, min_length=1, max_length=64)
    cleared_term: str | None = Field(None, min_length=1, max_length=64, description="Past tense of the clear action, e.g. \"reset\"")


# -----------------------------------------------------------------------------
# Policies
# -----------------------------------------------------------------------------


class FlagTypeCountsResponse(BaseModel):
    """Counts for one flag type."""

    total_count: int
    unique_owner_count: int


class PolicyResponse(BaseModel):
    """Effective retention policy for a flag type."""

    flag_type_id: str
    retention_days: int
    auto_clear: bool
    is_default: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PolicyOverviewItem(PolicyResponse):
    """Policy plus current counts, for the admin overview."""

    counts: FlagTypeCountsResponse


class PolicyUpdateRequest(BaseModel):
    """Request to set a flag type's retention policy."""

    retention_days: int = Field(..., ge=0, description="Days to keep flags (0 = forever)")
    auto_clear: bool = Field(False, description="Delete expired flags on each cleanup tick")


class StatisticsResponse(BaseModel):
    """Counts per flag type."""

    flag_types: dict[str, FlagTypeCountsResponse]


# -----------------------------------------------------------------------------
# Clearing
# -----------------------------------------------------------------------------


class AdminClearRequest(BaseModel):
    """Request to clear every flagging of a type."""

    confirm: bool = Field(False, description="Required; this permanently deletes data")


class AgeClearRequest(BaseModel):
    """Request to clear flaggings of a type older than N days."""

    days_old: int = Field(..., ge=1, description="Clear flags older than this many days")
    confirm: bool = Field(False, description="Required; this permanently deletes data")


class AdminClearResponse(BaseModel):
    """Result of an admin clear."""

    flag_type_id: str
    deleted: int
    before: FlagTypeCountsResponse
    message: str
    warning: str | None = None


class CleanupTickResponse(BaseModel):
    """Result of one cleanup tick."""

    state: TickState
    total_deleted: int
    failed_flag_type_ids: list[str]
    processed_flag_type_ids: list[str]
    deleted_by_type: dict[str, int]
    batch_size: int
    started_at: datetime | None = None
    finished_at: datetime | None = None
    errors: list[str] = Field(default_factory=list)


class UserFlagCountsResponse(BaseModel):
    """What a user could clear, per flag type."""

    owner_id: str
    counts: dict[str, int]
    total: int


class UserClearRequest(BaseModel):
    """Request to clear a user's flags."""

    flag_type_ids: list[str] | None = Field(
        None,
        description="Flag types to clear. Omit (or set clear_all) to clear every allowed type.",
    )
    clear_all: bool = Field(False, description="Clear every allowed flag type")


class UserClearResponse(BaseModel):
    """Result of a user clear."""

    owner_id: str
    deleted: int
    cleared_flag_type_ids: list[str]
    failed_flag_type_ids: list[str]
    message: str
    warning: str | None = None
