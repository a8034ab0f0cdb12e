"""
socialgen/features/plans/service.py

Plan resolution and entitlements.

Handles:
- Entitlement table (tier -> resource_type -> limit)
- Plan resolution from the subscriptions table
"""

import logging
from typing import Dict, Optional
from sqlalchemy import select

from socialgen.core.database import get_db_session, subscriptions
from socialgen.models.plan import PlanTier, ResolvedPlan, SubscriptionStatus
from socialgen.models.usage import ResourceType


logger = logging.getLogger(__name__)


# Per-period limits. Tiers missing from this table resolve to the lowest
# limit defined for the resource.
ENTITLEMENTS: Dict[str, Dict[str, int]] = {
    PlanTier.FREE.value: {
        ResourceType.TEMPLATE_CREATION.value: 20,
        ResourceType.CAPTION_GENERATION.value: 20,
        ResourceType.HASHTAG_ANALYSIS.value: 20,
    },
    PlanTier.PRO.value: {
        ResourceType.TEMPLATE_CREATION.value: 100,
        ResourceType.CAPTION_GENERATION.value: 100,
        ResourceType.HASHTAG_ANALYSIS.value: 100,
    },
    PlanTier.ENTERPRISE.value: {
        ResourceType.TEMPLATE_CREATION.value: 1000,
        ResourceType.CAPTION_GENERATION.value: 1000,
        ResourceType.HASHTAG_ANALYSIS.value: 1000,
    },
}


def lowest_limit(resource_type: str, entitlements: Optional[Dict[str, Dict[str, int]]] = None) -> int:
    """Most restrictive limit any tier defines for a resource (0 if none does)."""
    table = entitlements if entitlements is not None else ENTITLEMENTS
    limits = [limits[resource_type] for limits in table.values() if resource_type in limits]
    return min(limits) if limits else 0


def get_limit(
    tier: Optional[str],
    resource_type: str,
    entitlements: Optional[Dict[str, Dict[str, int]]] = None,
) -> int:
    """
    Entitlement limit for (tier, resource_type).

    Total function: an unknown or missing tier gets the lowest defined
    limit for the resource; an unknown resource gets 0.

    Args:
        tier: Plan tier (free, pro, enterprise, or anything else)
        resource_type: Quota bucket
        entitlements: Optional table override (tests, admin tooling)

    Returns:
        Non-negative integer limit
    """
    table = entitlements if entitlements is not None else ENTITLEMENTS
    tier_limits = table.get(tier or "")
    if tier_limits is not None and resource_type in tier_limits:
        return max(0, int(tier_limits[resource_type]))

    fallback = lowest_limit(resource_type, table)
    logger.warning(
        "[plans] no entitlement for tier, using lowest limit",
        extra={"tier": tier, "resource_type": resource_type, "limit": fallback},
    )
    return fallback


def get_tier_entitlements(tier: Optional[str]) -> Dict[str, int]:
    """All resource limits for a tier (unknown tiers get the lowest limits)."""
    return {resource.value: get_limit(tier, resource.value) for resource in ResourceType}


def _free_plan(user_id: str) -> ResolvedPlan:
    return ResolvedPlan(
        user_id=user_id,
        tier=PlanTier.FREE.value,
        status=SubscriptionStatus.ACTIVE.value,
        subscription_id=None,
    )


def resolve_plan(user_id: str) -> ResolvedPlan:
    """
    Resolve the plan a user is currently entitled to.

    1. The user's active subscription, if any.
    2. Otherwise, if the latest subscription is past_due, that subscription
       (the gate denies with subscription_inactive until it is paid).
    3. Otherwise a synthetic free plan; users never end up without one.

    No side effects. Store failures propagate as StoreUnavailableError.
    """
    with get_db_session() as session:
        active = session.execute(
            select(subscriptions)
            .where(subscriptions.c.user_id == user_id)
            .where(subscriptions.c.status == SubscriptionStatus.ACTIVE.value)
            .order_by(subscriptions.c.id.desc())
        ).first()

        if active:
            return ResolvedPlan(
                user_id=user_id,
                tier=active.tier,
                status=active.status,
                subscription_id=active.id,
            )

        latest = session.execute(
            select(subscriptions)
            .where(subscriptions.c.user_id == user_id)
            .order_by(subscriptions.c.updated_at.desc(), subscriptions.c.id.desc())
        ).first()

    if latest and latest.status == SubscriptionStatus.PAST_DUE.value:
        return ResolvedPlan(
            user_id=user_id,
            tier=latest.tier,
            status=latest.status,
            subscription_id=latest.id,
        )

    return _free_plan(user_id)
