"""Shared middleware for the platform API."""

from src.swrpg.shared.middleware.auth_middleware import (
    ApiKeyAuthenticator,
    Authenticator,
    BearerTokenAuthenticator,
    build_authenticators,
    resolve_principal,
)
from src.swrpg.shared.middleware.enforcement import (
    attach_permission_context,
    get_principal,
    require_any_role,
    require_minimum_role,
    require_permission,
    validate_token_limit,
)

__all__ = [
    "ApiKeyAuthenticator",
    "Authenticator",
    "BearerTokenAuthenticator",
    "attach_permission_context",
    "build_authenticators",
    "get_principal",
    "require_any_role",
    "require_minimum_role",
    "require_permission",
    "resolve_principal",
    "validate_token_limit",
]
