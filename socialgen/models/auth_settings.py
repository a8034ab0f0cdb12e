"""
socialgen/models/auth_settings.py

Authentication settings as stored under app_settings["general"]["auth"].
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

SUPPORTED_SOCIAL_PROVIDERS = ("google", "github", "facebook", "twitter", "linkedin", "discord", "apple")


class ProviderCredentials(BaseModel):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None


class AuthSettings(BaseModel):
    """Raw settings as an admin saved them; may list providers without secrets."""
    secret: str = ""
    trusted_origins: List[str] = Field(default_factory=list)
    enabled_providers: List[str] = Field(default_factory=list)
    provider_credentials: Dict[str, ProviderCredentials] = Field(default_factory=dict)


class SocialProvider(BaseModel):
    """A provider that passed validation: both client id and secret are set."""
    model_config = ConfigDict(frozen=True)

    name: str
    client_id: str
    client_secret: str


class ResolvedAuthConfig(BaseModel):
    """Validated configuration handed to the auth layer."""
    model_config = ConfigDict(frozen=True)

    secret: str
    trusted_origins: List[str]
    providers: List[SocialProvider]
    rejected_providers: List[str]

    @property
    def provider_names(self) -> List[str]:
        return [p.name for p in self.providers]
