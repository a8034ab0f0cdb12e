"""Tests for social provider configuration."""
import logging

from sqlalchemy import insert

from socialgen.core.database import app_settings, get_db_session
from socialgen.features.auth_providers.service import (
    AuthConfig,
    load_auth_settings,
    resolve_auth_config,
    resolve_social_providers,
    save_auth_settings,
)
from socialgen.models.auth_settings import AuthSettings, ProviderCredentials


def _settings(**overrides):
    fields = dict(
        secret="s3cret",
        trusted_origins=["https://app.example.com"],
        enabled_providers=["google", "github", "myspace"],
        provider_credentials={
            "google": ProviderCredentials(client_id="g-id", client_secret="g-secret"),
            "github": ProviderCredentials(client_id="gh-id", client_secret="   "),
        },
    )
    fields.update(overrides)
    return AuthSettings(**fields)


def test_providers_without_secrets_are_rejected(caplog):
    with caplog.at_level(logging.WARNING):
        providers, rejected = resolve_social_providers(_settings())
    assert [p.name for p in providers] == ["google"]
    assert providers[0].client_secret == "g-secret"
    assert rejected == ["github", "myspace"]
    assert {getattr(r, "provider", None) for r in caplog.records} >= {"github", "myspace"}


def test_enabled_provider_without_credentials_entry():
    providers, rejected = resolve_social_providers(
        _settings(enabled_providers=["discord"], provider_credentials={})
    )
    assert providers == []
    assert rejected == ["discord"]


def test_fallback_secret_used_when_unset():
    resolved = resolve_auth_config(_settings(secret=""), fallback_secret="env-secret")
    assert resolved.secret == "env-secret"
    assert resolved.provider_names == ["google"]


def test_missing_settings_row_gives_defaults():
    auth = load_auth_settings()
    assert auth.enabled_providers == []
    assert auth.secret == ""


def test_malformed_settings_fall_back_to_defaults():
    with get_db_session() as session:
        session.execute(
            insert(app_settings).values(key="general", value={"auth": {"enabled_providers": "google"}})
        )
    assert load_auth_settings().enabled_providers == []


def test_save_keeps_other_sections():
    with get_db_session() as session:
        session.execute(insert(app_settings).values(key="general", value={"site_name": "Socialgen"}))
    save_auth_settings(_settings())

    with get_db_session() as session:
        stored = session.execute(app_settings.select()).one().value
    assert stored["site_name"] == "Socialgen"
    assert stored["auth"]["enabled_providers"] == ["google", "github", "myspace"]


def test_auth_config_changes_only_on_reload():
    config = AuthConfig(fallback_secret="env-secret")
    assert config.current.provider_names == []

    save_auth_settings(_settings())
    assert config.current.provider_names == []

    config.reload()
    assert config.current.provider_names == ["google"]
    assert config.get_provider("google").client_id == "g-id"
    assert config.get_provider("github") is None


def test_auth_config_with_injected_loader():
    config = AuthConfig(loader=lambda: _settings(enabled_providers=["apple"], provider_credentials={
        "apple": ProviderCredentials(client_id="a-id", client_secret="a-secret"),
    }), fallback_secret="")
    assert config.current.provider_names == ["apple"]
