# flag_retention/routers/user_flags.py
"""
User-facing "clear my items" endpoints.

GET  /v1/users/{owner_id}/flags - What the user could clear, per flag type
POST /v1/users/{owner_id}/flags/clear - Clear the user's flags

Only available while user clearing is enabled. Callers act on their own
flags (X-User-Id) or, with the admin key, on anyone's.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from flag_retention.auth import require_owner_or_admin
from flag_retention.database import get_db
from flag_retention.exceptions import AccessDenied, InvalidPolicyValue
from flag_retention.schemas.retention import UserClearRequest, UserClearResponse, UserFlagCountsResponse
from flag_retention.services import (
    BatchDeleter,
    GlobalDefaults,
    StatisticsAggregator,
    clear_user_flags,
    load_global_defaults,
)
from flag_retention.storage import get_flagging_store

router = APIRouter(prefix="/v1/users", tags=["user-flags"])


def _require_user_clearing(defaults: GlobalDefaults) -> None:
    if not defaults.user_clearing_enabled:
        raise HTTPException(status_code=403, detail="Clearing flags is disabled")


@router.get("/{owner_id}/flags", response_model=UserFlagCountsResponse)
def get_user_flag_counts(
    owner_id: str,
    flag_type_id: str | None = Query(None, description="Limit to one flag type"),
    db: Session = Depends(get_db),
    _: bool = Depends(require_owner_or_admin),
) -> UserFlagCountsResponse:
    """
    Count the user's flaggings per flag type.

    Only flag types on the allow-list are reported; asking for another
    one returns zero.
    """
    defaults = load_global_defaults(db)
    _require_user_clearing(defaults)

    counts = StatisticsAggregator(get_flagging_store(db)).counts_by_owner(
        owner_id, defaults, flag_type_id=flag_type_id
    )
    return UserFlagCountsResponse(owner_id=owner_id, counts=counts, total=sum(counts.values()))


@router.post("/{owner_id}/flags/clear", response_model=UserClearResponse)
def clear_user_flag_types(
    owner_id: str,
    request: UserClearRequest,
    db: Session = Depends(get_db),
    _: bool = Depends(require_owner_or_admin),
) -> UserClearResponse:
    """
    Clear the user's flags.

    Clears the listed flag types, or every allowed type when `clear_all`
    is set or no list is given. Requesting a type outside the allow-list
    is refused with 403 before anything is deleted.
    """
    defaults = load_global_defaults(db)
    _require_user_clearing(defaults)

    flag_type_ids = None if request.clear_all else request.flag_type_ids

    store = get_flagging_store(db)
    stats = StatisticsAggregator(store)
    if flag_type_ids is None:
        expected = stats.total_for_owner(owner_id, defaults)
    else:
        expected = sum(
            sum(stats.counts_by_owner(owner_id, defaults, flag_type_id=t).values())
            for t in set(flag_type_ids)
        )

    try:
        result = clear_user_flags(
            BatchDeleter(store),
            owner_id,
            defaults,
            flag_type_ids=flag_type_ids,
            expected=expected,
        )
    except AccessDenied as e:
        raise HTTPException(status_code=403, detail=e.message)
    except InvalidPolicyValue as e:
        raise HTTPException(status_code=400, detail=e.message)

    return UserClearResponse(
        owner_id=owner_id,
        deleted=result.deleted,
        cleared_flag_type_ids=result.cleared_flag_type_ids,
        failed_flag_type_ids=result.failed_flag_type_ids,
        message=result.message,
        warning=result.warning,
    )
