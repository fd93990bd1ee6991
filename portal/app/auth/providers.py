"""
Sign-in provider registry.

Federated providers are configured from Settings; each one is enabled only
when both its client ID and client secret are present. The credentials
provider is always registered last.
"""

import logging
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from ..config import Settings

logger = logging.getLogger(__name__)


class OAuthProvider(BaseModel):
    """OAuth 2.0 / OIDC provider registration."""
    id: str
    name: str
    type: str = "oauth"
    client_id: str
    client_secret: str = Field(..., repr=False)
    authorization_url: str
    token_url: str
    userinfo_url: Optional[str] = None
    scope: str


class CredentialField(BaseModel):
    label: str
    type: str = "text"
    placeholder: str


class CredentialsProvider(BaseModel):
    """Email and password sign-in handled by the authorize callback."""
    id: str = "credentials"
    name: str = "credentials"
    type: str = "credentials"
    credentials: Dict[str, CredentialField] = Field(
        default_factory=lambda: {
            "name": CredentialField(label="Name", placeholder="Name"),
            "email": CredentialField(label="Email", placeholder="Email"),
            "password": CredentialField(label="Password", placeholder="Password"),
        }
    )


Provider = Union[OAuthProvider, CredentialsProvider]


# =============================================================================
# Provider Endpoints
# =============================================================================

_OAUTH_ENDPOINTS = {
    "google": {
        "name": "Google",
        "authorization_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "userinfo_url": "https://openidconnect.googleapis.com/v1/userinfo",
        "scope": "openid email profile",
    },
    "github": {
        "name": "GitHub",
        "authorization_url": "https://github.com/login/oauth/authorize",
        "token_url": "https://github.com/login/oauth/access_token",
        "userinfo_url": "https://api.github.com/user",
        "scope": "read:user user:email",
    },
    "apple": {
        "name": "Apple",
        "authorization_url": "https://appleid.apple.com/auth/authorize",
        "token_url": "https://appleid.apple.com/auth/token",
        "userinfo_url": None,
        "scope": "name email",
    },
}


def build_providers(settings: Settings) -> List[Provider]:
    """
    Build the enabled provider list from settings.

    Args:
        settings: Application settings

    Returns:
        Enabled OAuth providers in declaration order, then credentials
    """
    providers: List[Provider] = []

    for provider_id, endpoints in _OAUTH_ENDPOINTS.items():
        prefix = provider_id.upper()
        client_id = getattr(settings, f"{prefix}_CLIENT_ID")
        client_secret = getattr(settings, f"{prefix}_CLIENT_SECRET")

        if not client_id or not client_secret:
            logger.warning(f"{endpoints['name']} sign-in disabled: client credentials not configured")
            continue

        providers.append(
            OAuthProvider(
                id=provider_id,
                client_id=client_id,
                client_secret=client_secret,
                **endpoints,
            )
        )

    providers.append(CredentialsProvider())
    return providers


def describe_providers(providers: List[Provider], base_path: str = "/auth") -> Dict[str, Dict[str, str]]:
    """
    Public listing of providers for sign-in pages. Secrets never appear.

    Example:
        >>> describe_providers([CredentialsProvider()])["credentials"]["callbackUrl"]
        '/auth/callback/credentials'
    """
    return {
        provider.id: {
            "id": provider.id,
            "name": provider.name,
            "type": provider.type,
            "signinUrl": f"{base_path}/signin/{provider.id}",
            "callbackUrl": f"{base_path}/callback/{provider.id}",
        }
        for provider in providers
    }
