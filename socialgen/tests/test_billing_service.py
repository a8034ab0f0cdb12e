"""
Test subscription lifecycle service.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from socialgen.core.database import get_db_session, subscriptions
from socialgen.core.errors import ConflictError, ValidationError
from socialgen.features.billing.service import (
    apply_subscription_event,
    get_billing_status,
    get_subscription_history,
    get_subscriptions,
)
from socialgen.models.subscription import SubscriptionEventRequest


def _event(status, *, sub="sub_1", tier="pro", user_id="user_alice", event_id=None, period_end=None):
    return SubscriptionEventRequest(
        event_id=event_id,
        user_id=user_id,
        provider_subscription_id=sub,
        tier=tier,
        status=status,
        current_period_end=period_end,
    )


def test_first_event_creates_subscription():
    sub = apply_subscription_event(_event("active"))
    assert sub.status == "active"
    assert sub.tier == "pro"
    assert sub.provider_subscription_id == "sub_1"

    history = get_subscription_history("user_alice")
    assert len(history) == 1
    assert history[0].from_status is None
    assert history[0].to_status == "active"


def test_status_transitions_are_recorded():
    apply_subscription_event(_event("active"))
    apply_subscription_event(_event("past_due"))
    apply_subscription_event(_event("active"))
    apply_subscription_event(_event("canceled"))

    transitions = [(e.from_status, e.to_status) for e in get_subscription_history("user_alice")]
    assert transitions == [
        (None, "active"),
        ("active", "past_due"),
        ("past_due", "active"),
        ("active", "canceled"),
    ]
    # Rows are kept, never deleted
    assert len(get_subscriptions("user_alice")) == 1


def test_only_one_active_subscription_per_user():
    apply_subscription_event(_event("active", sub="sub_old", tier="pro"))
    apply_subscription_event(_event("active", sub="sub_new", tier="enterprise"))

    with get_db_session() as session:
        active = session.execute(
            select(subscriptions.c.provider_subscription_id)
            .where(subscriptions.c.user_id == "user_alice")
            .where(subscriptions.c.status == "active")
        ).all()
    assert [row.provider_subscription_id for row in active] == ["sub_new"]

    by_id = {s.provider_subscription_id: s.status for s in get_subscriptions("user_alice")}
    assert by_id == {"sub_old": "canceled", "sub_new": "active"}


def test_duplicate_event_id_is_ignored():
    apply_subscription_event(_event("active", event_id="evt_1"))
    again = apply_subscription_event(_event("canceled", event_id="evt_1"))
    assert again.status == "active"
    assert len(get_subscription_history("user_alice")) == 1


def test_reused_event_id_for_other_subscription_returns_stored_one():
    first = apply_subscription_event(_event("active", sub="sub_a", event_id="evt_1"))
    again = apply_subscription_event(_event("active", sub="sub_b", tier="enterprise", event_id="evt_1"))

    assert again == first
    assert [s.provider_subscription_id for s in get_subscriptions("user_alice")] == ["sub_a"]
    assert len(get_subscription_history("user_alice")) == 1


def test_lost_activation_race_is_a_conflict(monkeypatch):
    apply_subscription_event(_event("active", sub="sub_a"))
    # The competing writer has not committed its demotion yet
    monkeypatch.setattr(
        "socialgen.features.billing.service._demote_other_active",
        lambda session, event, occurred_at: None,
    )

    with pytest.raises(ConflictError) as exc_info:
        apply_subscription_event(_event("active", sub="sub_b", tier="enterprise"))
    assert exc_info.value.status_code == 409

    with get_db_session() as session:
        rows = session.execute(
            select(subscriptions.c.provider_subscription_id, subscriptions.c.status)
        ).all()
    assert [(r.provider_subscription_id, r.status) for r in rows] == [("sub_a", "active")]
    assert len(get_subscription_history("user_alice")) == 1


def test_unknown_status_rejected():
    with pytest.raises(ValidationError):
        apply_subscription_event(_event("trialing"))


def test_subscription_owned_by_other_user_rejected():
    apply_subscription_event(_event("active", user_id="user_alice"))
    with pytest.raises(ValidationError):
        apply_subscription_event(_event("active", user_id="user_bob"))


def test_billing_status_without_subscription():
    status = get_billing_status("user_bob")
    assert status["tier"] == "free"
    assert status["has_active_subscription"] is False
    assert status["period_end"] is None
    assert status["entitlements"]["caption_generation"] == 20


def test_billing_status_with_active_subscription():
    period_end = datetime.now(timezone.utc) + timedelta(days=30)
    apply_subscription_event(_event("active", tier="enterprise", period_end=period_end))
    status = get_billing_status("user_alice")
    assert status["tier"] == "enterprise"
    assert status["status"] == "active"
    assert status["has_active_subscription"] is True
    assert status["period_end"] is not None
    assert status["entitlements"]["template_creation"] == 1000
