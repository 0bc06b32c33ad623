# flag_retention/routers/admin_retention.py
"""
Admin endpoints for flag retention.

GET    /v1/admin/flag-retention/settings - Global defaults
PUT    /v1/admin/flag-retention/settings - Update global defaults
GET    /v1/admin/flag-retention/policies - Effective policy and counts per flag type
GET    /v1/admin/flag-retention/policies/{flag_type_id} - One policy
PUT    /v1/admin/flag-retention/policies/{flag_type_id} - Set a policy
DELETE /v1/admin/flag-retention/policies/{flag_type_id} - Reset a policy to the default
GET    /v1/admin/flag-retention/statistics - Counts per flag type
POST   /v1/admin/flag-retention/cleanup - Run one cleanup tick
POST   /v1/admin/flag-retention/flags/{flag_type_id}/clear - Clear every flag of a type
POST   /v1/admin/flag-retention/flags/{flag_type_id}/clear-older-than - Clear by age
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from flag_retention.auth import require_admin_key
from flag_retention.database import get_db
from flag_retention.exceptions import DeletionFailed, InvalidPolicyValue
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
)
from flag_retention.services import (
    BatchDeleter,
    RetentionPolicy,
    RetentionPolicyStore,
    StatisticsAggregator,
    SystemClock,
    build_cleanup_scheduler,
    format_clear_message,
    load_global_defaults,
    save_global_defaults,
)
from flag_retention.storage import FlagTypeCounts, get_flagging_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/flag-retention", tags=["admin-flag-retention"])


def _policy_response(policy: RetentionPolicy) -> PolicyResponse:
    return PolicyResponse(
        flag_type_id=policy.flag_type_id,
        retention_days=policy.retention_days,
        auto_clear=policy.auto_clear,
        is_default=policy.is_default,
        created_at=policy.created_at,
        updated_at=policy.updated_at,
    )


def _counts_response(counts: FlagTypeCounts) -> FlagTypeCountsResponse:
    return FlagTypeCountsResponse(
        total_count=counts.total_count,
        unique_owner_count=counts.unique_owner_count,
    )


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------


@router.get("/settings", response_model=GlobalSettingsResponse)
def get_global_settings(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> GlobalSettingsResponse:
    """Get the global defaults currently in effect."""
    return GlobalSettingsResponse(**load_global_defaults(db).to_dict())


@router.put("/settings", response_model=GlobalSettingsResponse)
def update_global_settings(
    request: GlobalSettingsUpdateRequest,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> GlobalSettingsResponse:
    """
    Update global defaults.

    Only fields present in the request body are changed.
    """
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    try:
        defaults = save_global_defaults(db, updates)
    except InvalidPolicyValue as e:
        raise HTTPException(status_code=400, detail=e.message)

    return GlobalSettingsResponse(**defaults.to_dict())


# -----------------------------------------------------------------------------
# Policies
# -----------------------------------------------------------------------------


@router.get("/policies")
def list_all_policies(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> list[PolicyOverviewItem]:
    """
    List the effective policy of every known flag type with its counts.

    Flag types that have flaggings but no stored policy show the global
    default with `is_default: true`.
    """
    defaults = load_global_defaults(db)
    store = get_flagging_store(db)
    counts = StatisticsAggregator(store).counts_by_type()
    policies = RetentionPolicyStore(db).list_policies(store.list_flag_types(), defaults)

    return [
        PolicyOverviewItem(
            **_policy_response(policy).model_dump(),
            counts=_counts_response(counts.get(policy.flag_type_id, FlagTypeCounts())),
        )
        for policy in policies
    ]


@router.get("/policies/{flag_type_id}", response_model=PolicyResponse)
def get_policy(
    flag_type_id: str,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> PolicyResponse:
    """Get the effective policy for a flag type. Never 404s."""
    policy = RetentionPolicyStore(db).get(flag_type_id, load_global_defaults(db))
    return _policy_response(policy)


@router.put("/policies/{flag_type_id}", response_model=PolicyResponse)
def update_policy(
    flag_type_id: str,
    request: PolicyUpdateRequest,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> PolicyResponse:
    """Create or replace the retention policy for a flag type."""
    try:
        policy = RetentionPolicyStore(db).save(flag_type_id, request.retention_days, request.auto_clear)
    except InvalidPolicyValue as e:
        raise HTTPException(status_code=400, detail=e.message)

    return _policy_response(policy)


@router.delete("/policies/{flag_type_id}", response_model=PolicyResponse)
def reset_policy(
    flag_type_id: str,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> PolicyResponse:
    """Drop the stored policy; the flag type falls back to the global default."""
    policy_store = RetentionPolicyStore(db)
    policy_store.delete(flag_type_id)
    return _policy_response(policy_store.get(flag_type_id, load_global_defaults(db)))


# -----------------------------------------------------------------------------
# Statistics and cleanup
# -----------------------------------------------------------------------------


@router.get("/statistics", response_model=StatisticsResponse)
def get_statistics(
    flag_type_id: str | None = Query(None, description="Limit to one flag type"),
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> StatisticsResponse:
    """Total and unique-owner counts per flag type. Always recomputed."""
    counts = StatisticsAggregator(get_flagging_store(db)).counts_by_type(flag_type_id)
    return StatisticsResponse(
        flag_types={name: _counts_response(c) for name, c in counts.items()},
    )


@router.post("/cleanup", response_model=CleanupTickResponse)
def trigger_cleanup(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> CleanupTickResponse:
    """
    Run one cleanup tick now.

    Deletes at most `cron_batch_size` expired flaggings across all
    auto-clear policies. Returns `skipped` if a tick is already running.
    """
    result = build_cleanup_scheduler(db).run_tick()

    return CleanupTickResponse(
        state=result.state,
        total_deleted=result.total_deleted,
        failed_flag_type_ids=result.failed_flag_type_ids,
        processed_flag_type_ids=result.processed_flag_type_ids,
        deleted_by_type=result.deleted_by_type,
        batch_size=result.batch_size,
        started_at=result.started_at,
        finished_at=result.finished_at,
        errors=result.errors,
    )


# -----------------------------------------------------------------------------
# Admin clears
# -----------------------------------------------------------------------------


def _run_admin_clear(db: Session, flag_type_id: str, clear) -> AdminClearResponse:
    """Count, clear, and build the response. `clear` takes a BatchDeleter."""
    defaults = load_global_defaults(db)
    store = get_flagging_store(db)
    before = StatisticsAggregator(store).counts_by_type(flag_type_id)[flag_type_id]

    warning = None
    try:
        deleted = clear(BatchDeleter(store))
    except DeletionFailed as e:
        logger.error(f"Admin clear of '{flag_type_id}' failed: {e.message}")
        deleted = 0
        warning = "Some items could not be cleared. Please try again later."
    else:
        if deleted == 0 and before.total_count > 0:
            warning = f"No {defaults.item_term_plural} matched."

    if defaults.log_clearing_activity:
        logger.info(
            f"Admin cleared {deleted} '{flag_type_id}' flaggings",
            extra={"event": "admin_clear", "flag_type_id": flag_type_id, "items_deleted": deleted},
        )

    return AdminClearResponse(
        flag_type_id=flag_type_id,
        deleted=deleted,
        before=_counts_response(before),
        message=format_clear_message(deleted, defaults),
        warning=warning,
    )


@router.post("/flags/{flag_type_id}/clear", response_model=AdminClearResponse)
def clear_flag_type(
    flag_type_id: str,
    request: AdminClearRequest,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> AdminClearResponse:
    """
    Delete every flagging of a type, regardless of owner or age.

    **WARNING**: This permanently deletes data. Requires `confirm: true`.
    """
    if not request.confirm:
        raise HTTPException(
            status_code=400,
            detail="Clearing a flag type requires 'confirm: true'",
        )

    return _run_admin_clear(db, flag_type_id, lambda deleter: deleter.clear_by_type(flag_type_id))


@router.post("/flags/{flag_type_id}/clear-older-than", response_model=AdminClearResponse)
def clear_flag_type_older_than(
    flag_type_id: str,
    request: AgeClearRequest,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> AdminClearResponse:
    """
    Delete flaggings of a type created more than `days_old` days ago.

    Requires `confirm: true`.
    """
    if not request.confirm:
        raise HTTPException(
            status_code=400,
            detail="Clearing old flags requires 'confirm: true'",
        )

    now = SystemClock().now()
    return _run_admin_clear(
        db,
        flag_type_id,
        lambda deleter: deleter.clear_older_than(flag_type_id, request.days_old, now),
    )
