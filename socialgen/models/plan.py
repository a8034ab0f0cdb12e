"""
socialgen/models/plan.py

Plan tier and resolved plan models.

A user's plan is derived from their active subscription; users without one
are on a synthetic free plan.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class PlanTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


class ResolvedPlan(BaseModel):
    """
    The plan a user is currently entitled to.

    `tier` is a plain string: subscriptions may carry tiers the entitlement
    table does not know (legacy or promotional tiers), and those must still
    resolve to a limit.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    tier: str
    status: str
    subscription_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE.value
