from fastapi import Depends, Header, Request
from typing import Optional

from solar_tracker.core.config import Settings
from solar_tracker.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
)
from solar_tracker.core.logging_config import set_user_id
from solar_tracker.core.security import keys_match
from solar_tracker.modules.auth.gate import AuthGate
from solar_tracker.modules.auth.identity import UserIdentity
from solar_tracker.services.installation_store import InstallationStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_installation_store(request: Request) -> InstallationStore:
    return request.app.state.installation_store


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` header"""
    if not authorization:
        raise AuthenticationError("Authorization header missing")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Invalid Authorization header format")
    return token


async def get_current_identity(
    authorization: Optional[str] = Header(None),
    auth_gate: AuthGate = Depends(get_auth_gate),
) -> UserIdentity:
    """Get the authenticated caller from the bearer token"""
    if not auth_gate.config.JWT_SECRET:
        raise ConfigurationError("Server is missing JWT configuration")

    token = extract_bearer_token(authorization)
    identity = auth_gate.authenticate(token)
    set_user_id(identity.id)
    return identity


async def require_admin_key(
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
    config: Settings = Depends(get_settings),
) -> None:
    """Shared-secret gate for user provisioning endpoints"""
    if not config.ADMIN_API_KEY:
        raise ConfigurationError("Admin API key is not configured")

    if not keys_match(x_admin_key, config.ADMIN_API_KEY):
        raise AuthorizationError("Forbidden")
