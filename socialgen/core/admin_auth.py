"""
Shared-secret guards for privileged routes.

- X-Webhook-Secret: payment-gateway callbacks (subscription events)
- X-Admin-Key: operator actions (auth provider reload)

Both fail closed: an unset secret answers 503, a missing or wrong header 401.
"""
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from socialgen.core.config import settings

logger = logging.getLogger(__name__)

WEBHOOK_SECRET_HEADER = "X-Webhook-Secret"
ADMIN_KEY_HEADER = "X-Admin-Key"


@dataclass
class AdminActor:
    """Identity attached to an admin action for the audit log."""
    actor_id: str  # "admin:<key hash prefix>"


def get_webhook_secret() -> Optional[str]:
    """WEBHOOK_SECRET env var wins over settings (tests and secret rotation)."""
    return os.getenv("WEBHOOK_SECRET") or settings.WEBHOOK_SECRET


def get_admin_api_key() -> Optional[str]:
    return os.getenv("ADMIN_API_KEY") or settings.ADMIN_API_KEY


def _header_matches(request: Request, header: str, expected: str) -> bool:
    presented = request.headers.get(header, "").strip()
    return bool(presented) and hmac.compare_digest(presented.encode(), expected.encode())


def _reject(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": code, "message": message})


def require_webhook_secret(request: Request) -> None:
    """FastAPI dependency for payment-gateway callbacks."""
    expected = get_webhook_secret()
    if not expected:
        logger.error("[auth] webhook rejected: WEBHOOK_SECRET not configured")
        raise _reject(503, "webhook_auth_unconfigured", "Webhook authentication not configured")
    if not _header_matches(request, WEBHOOK_SECRET_HEADER, expected):
        logger.warning("[auth] webhook rejected: bad or missing secret", extra={"path": request.url.path})
        raise _reject(401, "webhook_unauthorized", f"Invalid or missing {WEBHOOK_SECRET_HEADER} header")


def require_admin(request: Request) -> AdminActor:
    """
    FastAPI dependency: require the operator key.

    Usage:
        @router.post("/admin/thing")
        def thing(actor: AdminActor = Depends(require_admin)):
            ...
    """
    expected = get_admin_api_key()
    if not expected:
        raise _reject(503, "admin_auth_unconfigured", "Admin authentication not configured")
    if not _header_matches(request, ADMIN_KEY_HEADER, expected):
        raise _reject(401, "admin_unauthorized", f"Invalid or missing {ADMIN_KEY_HEADER} header")

    key_hash = hashlib.sha256(expected.encode()).hexdigest()[:16]
    return AdminActor(actor_id=f"admin:{key_hash}")
