"""
Quota denial contract over HTTP.

Denials surface as 403 with a stable error code; limit denials carry the
limit so clients can show an upgrade prompt.
"""
from sqlalchemy import insert

from socialgen.core.database import get_db_session, usage_counters
from socialgen.core.errors import QuotaExceededError
from socialgen.features.usage.service import current_period_start, get_count


def _fill(user_id, resource_type, count=20):
    with get_db_session() as session:
        session.execute(
            insert(usage_counters).values(
                user_id=user_id,
                resource_type=resource_type,
                period_start=current_period_start(),
                count=count,
            )
        )


def _subscription_event(client, status, event_id):
    return client.post(
        "/v1/billing/subscription-events",
        headers={"X-Webhook-Secret": "whsec_test"},
        json={
            "event_id": event_id,
            "user_id": "user_alice",
            "provider_subscription_id": "sub_alice",
            "tier": "pro",
            "status": status,
        },
    )


class TestQuotaExceededErrorContract:
    def test_error_object(self):
        error = QuotaExceededError("limit reached", limit=20, resource_type="caption_generation")
        assert error.status_code == 403
        assert error.code == "limit_reached"
        assert error.details() == {"limit": 20, "resource_type": "caption_generation"}

    def test_reserve_allowed(self, client, user_headers):
        resp = client.post("/v1/quota/caption_generation/reserve", headers=user_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["allowed"] is True
        assert body["current"] == 1
        assert body["remaining"] == 19
        assert body["tier"] == "free"

    def test_reserve_at_limit_returns_403_with_limit(self, client, user_headers):
        _fill("user_alice", "caption_generation")
        resp = client.post("/v1/quota/caption_generation/reserve", headers=user_headers)
        assert resp.status_code == 403
        error = resp.json()["error"]
        assert error["code"] == "limit_reached"
        assert error["limit"] == 20
        assert error["resource_type"] == "caption_generation"
        assert error["request_id"] == resp.headers["x-request-id"]
        assert get_count("user_alice", "caption_generation") == 20

    def test_template_create_denied(self, client, user_headers):
        _fill("user_alice", "template_creation")
        resp = client.post(
            "/v1/templates",
            headers=user_headers,
            json={"name": "Blocked", "hashtags": ["#nope"]},
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "limit_reached"

        listing = client.get("/v1/templates", headers=user_headers)
        assert listing.json()["total_count"] == 0

    def test_past_due_returns_subscription_inactive(self, client, user_headers):
        assert _subscription_event(client, "active", "evt_1").status_code == 200
        assert _subscription_event(client, "past_due", "evt_2").status_code == 200

        resp = client.post("/v1/generations/caption", headers=user_headers, json={"platform": "instagram"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "subscription_inactive"
        assert get_count("user_alice", "caption_generation") == 0

    def test_usage_endpoint_does_not_consume(self, client, user_headers):
        for _ in range(3):
            resp = client.get("/v1/usage/hashtag_analysis", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json()["current"] == 0
        assert get_count("user_alice", "hashtag_analysis") == 0

    def test_unknown_resource_type_is_404(self, client, user_headers):
        resp = client.post("/v1/quota/video_rendering/reserve", headers=user_headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"
