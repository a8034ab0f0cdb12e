"""
socialgen/features/quota/service.py

Quota gate and gated action executor.

Handles:
- check_and_reserve: plan + entitlement + atomic counter reservation
- get_usage: read-only usage view for display
- run_gated: reserve-then-act wrapper used by every quota-limited action

Ordering: a unit is reserved before the action runs. If the action fails
afterwards the reservation stands (usage may over-count on failure, it can
never under-count). Denials are returned as values; only infrastructure
failures raise.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, TypeVar

from socialgen.core.errors import QuotaExceededError, SubscriptionInactiveError
from socialgen.features.plans.service import get_limit, resolve_plan
from socialgen.features.usage.service import (
    current_period_start,
    get_count,
    increment_if_below_limit,
    list_counters,
)
from socialgen.models.quota import DenialReason, GatedResult, QuotaDecision
from socialgen.models.usage import ResourceType, UsageSnapshot


logger = logging.getLogger(__name__)

T = TypeVar("T")


def check_and_reserve(
    user_id: str,
    resource_type: str,
    now: Optional[datetime] = None,
) -> QuotaDecision:
    """
    Decide whether the user may consume one unit and, if so, consume it.

    Args:
        user_id: User performing the action
        resource_type: Quota bucket the action consumes
        now: Fixed timestamp for deterministic period selection

    Returns:
        QuotaDecision; allowed=False carries the DenialReason

    Raises:
        StoreUnavailableError: If plan or counter state cannot be verified
    """
    plan = resolve_plan(user_id)
    limit = get_limit(plan.tier, resource_type)

    if not plan.is_active:
        current = get_count(user_id, resource_type, now=now)
        logger.warning(
            "[quota] DENIED",
            extra={
                "user_id": user_id,
                "resource_type": resource_type,
                "tier": plan.tier,
                "status": plan.status,
                "reason": DenialReason.SUBSCRIPTION_INACTIVE.value,
            },
        )
        return QuotaDecision(
            allowed=False,
            resource_type=resource_type,
            tier=plan.tier,
            limit=limit,
            current=current,
            reason=DenialReason.SUBSCRIPTION_INACTIVE,
        )

    outcome = increment_if_below_limit(user_id, resource_type, limit, now=now)
    if not outcome.accepted:
        logger.warning(
            "[quota] DENIED",
            extra={
                "user_id": user_id,
                "resource_type": resource_type,
                "tier": plan.tier,
                "limit": limit,
                "current_usage": outcome.new_count,
                "reason": DenialReason.LIMIT_REACHED.value,
            },
        )
        return QuotaDecision(
            allowed=False,
            resource_type=resource_type,
            tier=plan.tier,
            limit=limit,
            current=outcome.new_count,
            reason=DenialReason.LIMIT_REACHED,
        )

    logger.info(
        "[quota] ALLOWED",
        extra={
            "user_id": user_id,
            "resource_type": resource_type,
            "tier": plan.tier,
            "limit": limit,
            "current_usage": outcome.new_count,
            "remaining": max(0, limit - outcome.new_count),
        },
    )
    return QuotaDecision(
        allowed=True,
        resource_type=resource_type,
        tier=plan.tier,
        limit=limit,
        current=outcome.new_count,
    )


def raise_for_denial(decision: QuotaDecision) -> None:
    """Translate a denial into the matching AppError at the HTTP edge."""
    if decision.allowed:
        return
    if decision.reason == DenialReason.SUBSCRIPTION_INACTIVE:
        raise SubscriptionInactiveError(
            "Your subscription is not active. Please update your billing details to continue."
        )
    raise QuotaExceededError(
        f"{decision.resource_type} limit reached ({decision.limit})",
        limit=decision.limit,
        resource_type=decision.resource_type,
    )


def _percentage(current: int, limit: int) -> int:
    if limit <= 0:
        return 100
    return round(current / limit * 100)


def get_usage(
    user_id: str,
    resource_type: str,
    now: Optional[datetime] = None,
) -> UsageSnapshot:
    """Current usage, limit and percentage for display. Never writes."""
    plan = resolve_plan(user_id)
    limit = get_limit(plan.tier, resource_type)
    current = get_count(user_id, resource_type, now=now)
    return UsageSnapshot(
        resource_type=resource_type,
        current=current,
        limit=limit,
        percentage=_percentage(current, limit),
        tier=plan.tier,
        has_active_subscription=plan.subscription_id is not None and plan.is_active,
        period_start=current_period_start(now),
    )


def get_all_usage(user_id: str, now: Optional[datetime] = None) -> List[UsageSnapshot]:
    """Usage of every resource type, resolving the plan and counters once."""
    plan = resolve_plan(user_id)
    counts = {counter.resource_type: counter.count for counter in list_counters(user_id, now=now)}
    period_start = current_period_start(now)

    snapshots = []
    for resource in ResourceType:
        limit = get_limit(plan.tier, resource.value)
        current = counts.get(resource.value, 0)
        snapshots.append(
            UsageSnapshot(
                resource_type=resource.value,
                current=current,
                limit=limit,
                percentage=_percentage(current, limit),
                tier=plan.tier,
                has_active_subscription=plan.subscription_id is not None and plan.is_active,
                period_start=period_start,
            )
        )
    return snapshots


def run_gated(
    user_id: str,
    resource_type: str,
    action: Callable[[], T],
    now: Optional[datetime] = None,
) -> GatedResult:
    """
    Run `action` only if a unit of `resource_type` can be reserved.

    Denied: the action is not called and the decision is returned unchanged.
    Allowed: the action runs after the reservation; if it raises, the
    exception propagates and the reserved unit is not returned.
    """
    decision = check_and_reserve(user_id, resource_type, now=now)
    if not decision.allowed:
        return GatedResult(decision=decision)

    try:
        result = action()
    except Exception:
        logger.error(
            "[quota] gated action failed after reservation",
            exc_info=True,
            extra={
                "user_id": user_id,
                "resource_type": resource_type,
                "current_usage": decision.current,
            },
        )
        raise
    return GatedResult(decision=decision, result=result)
