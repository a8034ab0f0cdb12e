"""
Usage and quota API.

- GET  /v1/usage                           All resource types for the caller
- GET  /v1/usage/{resource_type}           One resource type (never consumes)
- GET  /v1/usage/{resource_type}/history   Counts per past period
- POST /v1/quota/{resource_type}/reserve   Reserve one unit (check-and-increment)
"""
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from socialgen.core.auth import get_current_user_id
from socialgen.core.errors import NotFoundError
from socialgen.features.quota.service import (
    check_and_reserve,
    get_all_usage,
    get_usage,
    raise_for_denial,
)
from socialgen.features.usage.service import get_counts_by_period
from socialgen.models.usage import ResourceType, UsageSnapshot


router = APIRouter(tags=["usage"])


class ReserveResponse(BaseModel):
    allowed: bool
    resource_type: str
    tier: str
    limit: int
    current: int
    remaining: int


class UsageListResponse(BaseModel):
    usage: List[UsageSnapshot]


def _known_resource(resource_type: str) -> str:
    if resource_type not in {r.value for r in ResourceType}:
        raise NotFoundError(f"Unknown resource type: {resource_type}")
    return resource_type


@router.get("/v1/usage", response_model=UsageListResponse)
def list_usage(user_id: str = Depends(get_current_user_id)):
    return {"usage": get_all_usage(user_id)}


@router.get("/v1/usage/{resource_type}", response_model=UsageSnapshot)
def read_usage(resource_type: str, user_id: str = Depends(get_current_user_id)):
    return get_usage(user_id, _known_resource(resource_type))


@router.post("/v1/quota/{resource_type}/reserve", response_model=ReserveResponse)
def reserve(resource_type: str, user_id: str = Depends(get_current_user_id)):
    """
    Reserve one unit for an action performed elsewhere.

    Errors:
        403 subscription_inactive: Plan is past due or canceled
        403 limit_reached: Monthly limit used up (payload carries the limit)
        503 store_unavailable: Quota state could not be verified
    """
    decision = check_and_reserve(user_id, _known_resource(resource_type))
    raise_for_denial(decision)
    return ReserveResponse(
        allowed=decision.allowed,
        resource_type=decision.resource_type,
        tier=decision.tier,
        limit=decision.limit,
        current=decision.current,
        remaining=decision.remaining,
    )


class PeriodCount(BaseModel):
    period_start: datetime
    count: int


class UsageHistoryResponse(BaseModel):
    resource_type: str
    periods: List[PeriodCount]


@router.get("/v1/usage/{resource_type}/history", response_model=UsageHistoryResponse)
def usage_history(resource_type: str, user_id: str = Depends(get_current_user_id)):
    """Per-period counts, oldest first. Past periods are kept, never reset."""
    history = get_counts_by_period(user_id, _known_resource(resource_type))
    return {
        "resource_type": resource_type,
        "periods": [{"period_start": start, "count": count} for start, count in history.items()],
    }
