"""
Billing API routes.

Minimal surface:
- POST /v1/billing/subscription-events: Apply a payment-provider subscription event
- GET  /v1/billing/status: Get user billing status
- GET  /v1/billing/history: Subscriptions and their status transitions

Checkout and signature verification belong to the payment gateway, which
forwards verified events with the shared X-Webhook-Secret header.
"""
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from socialgen.core.admin_auth import require_webhook_secret
from socialgen.core.auth import get_current_user_id
from socialgen.core.logging import log_event
from socialgen.features.billing.service import (
    apply_subscription_event,
    get_billing_status,
    get_subscription_history,
    get_subscriptions,
)
from socialgen.features.users.service import get_or_create_user
from socialgen.models.subscription import Subscription, SubscriptionEvent, SubscriptionEventRequest


router = APIRouter(prefix="/v1/billing", tags=["billing"])


class BillingStatusResponse(BaseModel):
    """User billing status."""
    tier: str
    status: str
    has_active_subscription: bool
    period_end: Optional[datetime] = None
    entitlements: Dict[str, int]


class BillingHistoryResponse(BaseModel):
    subscriptions: List[Subscription]
    events: List[SubscriptionEvent]


@router.post(
    "/subscription-events",
    response_model=Subscription,
    dependencies=[Depends(require_webhook_secret)],
)
def subscription_event(event: SubscriptionEventRequest):
    """
    Apply a subscription lifecycle event.

    Idempotent per event_id. Activating a subscription cancels any other
    active subscription of the same user.

    Errors:
        400: Unknown status, or subscription owned by another user
        401: Missing or wrong X-Webhook-Secret
        409: Concurrent activation for the same user (retry)
        503: Store unavailable
    """
    get_or_create_user(event.user_id)
    subscription = apply_subscription_event(event)
    log_event(
        "info",
        "billing.subscription_event",
        user_id=event.user_id,
        event_type=f"subscription.{event.status}",
        extra={
            "provider_event_id": event.event_id,
            "provider_subscription_id": event.provider_subscription_id,
            "tier": event.tier,
        },
    )
    return subscription


@router.get("/status", response_model=BillingStatusResponse)
def billing_status(user_id: str = Depends(get_current_user_id)):
    return get_billing_status(user_id)


@router.get("/history", response_model=BillingHistoryResponse)
def billing_history(user_id: str = Depends(get_current_user_id)):
    return {
        "subscriptions": get_subscriptions(user_id),
        "events": get_subscription_history(user_id),
    }
