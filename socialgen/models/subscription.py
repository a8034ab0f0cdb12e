"""
socialgen/models/subscription.py

Subscription models (billing state per user).
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Subscription(BaseModel):
    """
    Subscription represents one billing subscription of a user.

    Constraint: at most one subscription per user has status "active".
    Rows are never deleted; status changes are recorded as
    SubscriptionEvent rows.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: str
    tier: str
    status: str
    provider_subscription_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None


class SubscriptionEvent(BaseModel):
    """A recorded status transition of a subscription."""
    model_config = ConfigDict(frozen=True)

    subscription_id: int
    user_id: str
    tier: str
    from_status: Optional[str] = None
    to_status: str
    provider_event_id: Optional[str] = None
    occurred_at: datetime


class SubscriptionEventRequest(BaseModel):
    """Payment-provider subscription event, authenticated by the shared webhook secret."""
    event_id: Optional[str] = None
    user_id: str = Field(min_length=1)
    provider_subscription_id: str = Field(min_length=1)
    tier: str = Field(min_length=1)
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
