"""
socialgen/features/auth_providers/service.py

Social sign-in provider configuration.

Handles:
- Loading raw auth settings from app_settings["general"]["auth"]
- Validating enabled providers (both client id and secret required)
- AuthConfig: an explicitly passed holder with reload(), no module globals
"""

import logging
import threading
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update

from socialgen.core.config import settings
from socialgen.core.database import app_settings, get_db_session, insert_ignore
from socialgen.models.auth_settings import (
    SUPPORTED_SOCIAL_PROVIDERS,
    AuthSettings,
    ResolvedAuthConfig,
    SocialProvider,
)


logger = logging.getLogger(__name__)

SETTINGS_KEY = "general"


def load_auth_settings() -> AuthSettings:
    """
    Read raw auth settings from the database.

    A missing row yields defaults. A malformed document is logged and
    replaced by defaults (no providers enabled). Store failures propagate.
    """
    with get_db_session() as session:
        row = session.execute(
            select(app_settings.c.value).where(app_settings.c.key == SETTINGS_KEY)
        ).first()

    raw = (row.value or {}).get("auth", {}) if row else {}
    try:
        return AuthSettings.model_validate(raw)
    except PydanticValidationError as exc:
        logger.error(
            "[auth] invalid auth settings, using defaults",
            extra={"error_count": exc.error_count()},
        )
        return AuthSettings()


def save_auth_settings(auth: AuthSettings) -> None:
    """Store auth settings under app_settings["general"]["auth"], keeping other sections."""
    with get_db_session() as session:
        session.execute(
            insert_ignore(app_settings).values(key=SETTINGS_KEY, value={})
        )
        current = session.execute(
            select(app_settings.c.value).where(app_settings.c.key == SETTINGS_KEY)
        ).scalar_one()
        merged = dict(current or {})
        merged["auth"] = auth.model_dump()
        session.execute(
            update(app_settings)
            .where(app_settings.c.key == SETTINGS_KEY)
            .values(value=merged)
        )


def resolve_social_providers(auth: AuthSettings) -> Tuple[List[SocialProvider], List[str]]:
    """
    Providers usable for social sign-in, plus the names that were rejected.

    A provider is usable only when it is supported and has both a client id
    and a client secret. Rejected providers are logged and never appear
    with empty credentials.
    """
    providers: List[SocialProvider] = []
    rejected: List[str] = []
    for name in dict.fromkeys(auth.enabled_providers):
        credentials = auth.provider_credentials.get(name)
        client_id = (credentials.client_id or "").strip() if credentials else ""
        client_secret = (credentials.client_secret or "").strip() if credentials else ""

        if name not in SUPPORTED_SOCIAL_PROVIDERS:
            logger.warning("[auth] unsupported provider rejected", extra={"provider": name})
            rejected.append(name)
            continue
        if not client_id or not client_secret:
            logger.warning(
                "[auth] provider enabled but missing credentials, rejected",
                extra={
                    "provider": name,
                    "has_client_id": bool(client_id),
                    "has_client_secret": bool(client_secret),
                },
            )
            rejected.append(name)
            continue
        providers.append(SocialProvider(name=name, client_id=client_id, client_secret=client_secret))
    return providers, rejected


def resolve_auth_config(auth: AuthSettings, fallback_secret: Optional[str] = None) -> ResolvedAuthConfig:
    """Validate raw settings into the config the auth layer consumes."""
    providers, rejected = resolve_social_providers(auth)
    return ResolvedAuthConfig(
        secret=auth.secret or fallback_secret or "",
        trusted_origins=list(auth.trusted_origins),
        providers=providers,
        rejected_providers=rejected,
    )


class AuthConfig:
    """
    Holder for the validated auth configuration.

    Created once at startup and passed to whatever needs it (app.state in
    the API). `reload()` swaps in a freshly validated config atomically;
    if loading fails the previous config stays in place.
    """

    def __init__(
        self,
        loader: Callable[[], AuthSettings] = load_auth_settings,
        fallback_secret: Optional[str] = None,
    ):
        self._loader = loader
        self._fallback_secret = fallback_secret if fallback_secret is not None else settings.AUTH_SECRET
        self._lock = threading.Lock()
        self._current: Optional[ResolvedAuthConfig] = None

    @property
    def current(self) -> ResolvedAuthConfig:
        if self._current is None:
            return self.reload()
        return self._current

    def reload(self) -> ResolvedAuthConfig:
        resolved = resolve_auth_config(self._loader(), self._fallback_secret)
        with self._lock:
            self._current = resolved
        logger.info(
            "[auth] configuration loaded",
            extra={
                "providers": ",".join(resolved.provider_names),
                "rejected": ",".join(resolved.rejected_providers),
            },
        )
        return resolved

    def get_provider(self, name: str) -> Optional[SocialProvider]:
        for provider in self.current.providers:
            if provider.name == name:
                return provider
        return None
