"""
Subscription lifecycle service.

Applies payment-provider subscription events to the subscriptions table:
- Creates the subscription on its first event
- Transitions status on renewal / cancellation / payment failure
- Keeps at most one active subscription per user
- Appends every transition to subscription_events (never deletes)

The HTTP edge authenticates the payment gateway (socialgen.core.admin_auth).
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from socialgen.core.database import (
    get_db_session,
    subscriptions,
    subscription_events,
)
from socialgen.core.errors import ConflictError, ValidationError
from socialgen.features.plans.service import get_tier_entitlements, resolve_plan
from socialgen.models.plan import SubscriptionStatus
from socialgen.models.subscription import (
    Subscription,
    SubscriptionEvent,
    SubscriptionEventRequest,
)


logger = logging.getLogger(__name__)

VALID_STATUSES = {status.value for status in SubscriptionStatus}


def _row_to_subscription(row) -> Subscription:
    return Subscription(
        id=row.id,
        user_id=row.user_id,
        tier=row.tier,
        status=row.status,
        provider_subscription_id=row.provider_subscription_id,
        current_period_start=row.current_period_start,
        current_period_end=row.current_period_end,
    )


def _record_transition(
    session,
    *,
    subscription_id: int,
    user_id: str,
    tier: str,
    from_status: Optional[str],
    to_status: str,
    occurred_at: datetime,
    provider_event_id: Optional[str] = None,
) -> None:
    session.execute(
        insert(subscription_events).values(
            subscription_id=subscription_id,
            user_id=user_id,
            tier=tier,
            from_status=from_status,
            to_status=to_status,
            provider_event_id=provider_event_id,
            occurred_at=occurred_at,
        )
    )


def apply_subscription_event(
    event: SubscriptionEventRequest,
    now: Optional[datetime] = None,
) -> Subscription:
    """
    Apply a subscription event (idempotent per provider event id).

    Args:
        event: Provider event (subscription id, user, tier, new status, period)
        now: Fixed timestamp for the audit trail

    Returns:
        Subscription as stored after the event

    Raises:
        ValidationError: Unknown status, or the subscription belongs to another user
        ConflictError: A concurrent event for the same user won the race
    """
    if event.status not in VALID_STATUSES:
        raise ValidationError(f"Unknown subscription status: {event.status}")

    occurred_at = now or datetime.now(timezone.utc)

    try:
        with get_db_session() as session:
            if event.event_id:
                replayed = _stored_subscription_for_event(session, event.event_id)
                if replayed is not None:
                    logger.info(
                        "[billing] duplicate subscription event skipped",
                        extra={"event_id": event.event_id, "user_id": event.user_id},
                    )
                    return replayed
            subscription_id, from_status, row = _apply_in_session(session, event, occurred_at)
    except IntegrityError as exc:
        # Partial unique index on active subscriptions, or a duplicate provider id
        logger.warning(
            "[billing] concurrent subscription write rejected",
            extra={"user_id": event.user_id, "event_id": event.event_id},
        )
        raise ConflictError(
            "Subscription changed concurrently, retry the event"
        ) from exc

    logger.info(
        "[billing] subscription event applied",
        extra={
            "user_id": event.user_id,
            "subscription_id": subscription_id,
            "tier": event.tier,
            "from_status": from_status,
            "to_status": event.status,
        },
    )
    return _row_to_subscription(row)


def _stored_subscription_for_event(session, event_id: str) -> Optional[Subscription]:
    """Subscription an already-recorded provider event was applied to, if any."""
    row = session.execute(
        select(subscriptions)
        .join(subscription_events, subscription_events.c.subscription_id == subscriptions.c.id)
        .where(subscription_events.c.provider_event_id == event_id)
        .limit(1)
    ).first()
    return _row_to_subscription(row) if row is not None else None


def _demote_other_active(session, event: SubscriptionEventRequest, occurred_at: datetime) -> None:
    """Cancel every other active subscription of the user."""
    others = session.execute(
        select(subscriptions)
        .where(subscriptions.c.user_id == event.user_id)
        .where(subscriptions.c.status == SubscriptionStatus.ACTIVE.value)
        .where(subscriptions.c.provider_subscription_id != event.provider_subscription_id)
        .with_for_update()
    ).all()
    for other in others:
        session.execute(
            update(subscriptions)
            .where(subscriptions.c.id == other.id)
            .values(status=SubscriptionStatus.CANCELED.value, updated_at=occurred_at)
        )
        _record_transition(
            session,
            subscription_id=other.id,
            user_id=other.user_id,
            tier=other.tier,
            from_status=other.status,
            to_status=SubscriptionStatus.CANCELED.value,
            occurred_at=occurred_at,
        )
        logger.info(
            "[billing] superseded active subscription canceled",
            extra={"user_id": event.user_id, "subscription_id": other.id},
        )


def _apply_in_session(session, event: SubscriptionEventRequest, occurred_at: datetime):
    existing = session.execute(
        select(subscriptions)
        .where(subscriptions.c.provider_subscription_id == event.provider_subscription_id)
        .with_for_update()
    ).first()

    if existing and existing.user_id != event.user_id:
        raise ValidationError(
            f"Subscription {event.provider_subscription_id} belongs to another user"
        )

    if event.status == SubscriptionStatus.ACTIVE.value:
        _demote_other_active(session, event, occurred_at)

    if existing:
        from_status = existing.status
        session.execute(
            update(subscriptions)
            .where(subscriptions.c.id == existing.id)
            .values(
                tier=event.tier,
                status=event.status,
                current_period_start=event.current_period_start or existing.current_period_start,
                current_period_end=event.current_period_end or existing.current_period_end,
                updated_at=occurred_at,
            )
        )
        subscription_id = existing.id
    else:
        from_status = None
        subscription_id = session.execute(
            insert(subscriptions).values(
                user_id=event.user_id,
                tier=event.tier,
                status=event.status,
                provider_subscription_id=event.provider_subscription_id,
                current_period_start=event.current_period_start,
                current_period_end=event.current_period_end,
                created_at=occurred_at,
                updated_at=occurred_at,
            )
        ).inserted_primary_key[0]

    _record_transition(
        session,
        subscription_id=subscription_id,
        user_id=event.user_id,
        tier=event.tier,
        from_status=from_status,
        to_status=event.status,
        occurred_at=occurred_at,
        provider_event_id=event.event_id,
    )

    row = session.execute(
        select(subscriptions).where(subscriptions.c.id == subscription_id)
    ).one()
    return subscription_id, from_status, row


def get_subscriptions(user_id: str) -> List[Subscription]:
    """All subscriptions of a user, newest first."""
    with get_db_session() as session:
        rows = session.execute(
            select(subscriptions)
            .where(subscriptions.c.user_id == user_id)
            .order_by(subscriptions.c.id.desc())
        ).all()
    return [_row_to_subscription(row) for row in rows]


def get_subscription_history(user_id: str) -> List[SubscriptionEvent]:
    """Audit trail of status transitions, oldest first."""
    with get_db_session() as session:
        rows = session.execute(
            select(subscription_events)
            .where(subscription_events.c.user_id == user_id)
            .order_by(subscription_events.c.occurred_at, subscription_events.c.id)
        ).all()
    return [
        SubscriptionEvent(
            subscription_id=row.subscription_id,
            user_id=row.user_id,
            tier=row.tier,
            from_status=row.from_status,
            to_status=row.to_status,
            provider_event_id=row.provider_event_id,
            occurred_at=row.occurred_at,
        )
        for row in rows
    ]


def get_billing_status(user_id: str) -> Dict[str, Any]:
    """
    Get user's billing status.

    Returns:
        {
            "tier": str,
            "status": str,
            "has_active_subscription": bool,
            "period_end": datetime | None,
            "entitlements": {resource_type: limit}
        }
    """
    plan = resolve_plan(user_id)
    period_end = None
    if plan.subscription_id is not None:
        with get_db_session() as session:
            period_end = session.execute(
                select(subscriptions.c.current_period_end).where(
                    subscriptions.c.id == plan.subscription_id
                )
            ).scalar_one_or_none()

    return {
        "tier": plan.tier,
        "status": plan.status,
        "has_active_subscription": plan.subscription_id is not None and plan.is_active,
        "period_end": period_end,
        "entitlements": get_tier_entitlements(plan.tier),
    }
