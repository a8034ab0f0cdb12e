"""
Social sign-in provider API.

- GET  /v1/auth/providers         Providers usable for sign-in (no secrets)
- POST /v1/auth/providers/reload  Re-read settings after an admin change (X-Admin-Key)
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from socialgen.core.admin_auth import AdminActor, require_admin
from socialgen.core.auth import get_auth_config
from socialgen.core.logging import log_event
from socialgen.features.auth_providers.service import AuthConfig


router = APIRouter(prefix="/v1/auth", tags=["auth"])


class ProvidersResponse(BaseModel):
    providers: List[str]
    trusted_origins: List[str]


class ReloadResponse(BaseModel):
    providers: List[str]
    rejected: List[str]


@router.get("/providers", response_model=ProvidersResponse)
def list_providers(auth_config: AuthConfig = Depends(get_auth_config)):
    current = auth_config.current
    return {"providers": current.provider_names, "trusted_origins": current.trusted_origins}


@router.post("/providers/reload", response_model=ReloadResponse)
def reload_providers(
    auth_config: AuthConfig = Depends(get_auth_config),
    actor: AdminActor = Depends(require_admin),
):
    """Re-read provider settings; providers missing credentials are reported as rejected."""
    resolved = auth_config.reload()
    log_event(
        "info",
        "auth.providers_reloaded",
        event_type="auth.reload",
        extra={
            "actor_id": actor.actor_id,
            "providers": resolved.provider_names,
            "rejected": resolved.rejected_providers,
        },
    )
    return {"providers": resolved.provider_names, "rejected": resolved.rejected_providers}
