"""
Request identity for the socialgen API.

Session handling lives in the upstream auth gateway, which forwards the
authenticated user as the X-User-Id header. The user row is upserted on
first sight so usage and subscriptions always reference a known user.
"""
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request

from socialgen.features.auth_providers.service import AuthConfig
from socialgen.features.users.service import get_or_create_user

logger = logging.getLogger(__name__)


def get_current_user_id(
    x_user_id: Optional[str] = Header(None, description="Authenticated user id set by the gateway"),
) -> str:
    """
    Resolve the current user id.

    Raises:
        HTTPException 401: Missing X-User-Id header
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "unauthorized",
                "message": "Missing X-User-Id header",
            },
        )

    get_or_create_user(user_id)
    return user_id


def get_auth_config(request: Request) -> AuthConfig:
    """AuthConfig created at startup (see socialgen.main)."""
    return request.app.state.auth_config
