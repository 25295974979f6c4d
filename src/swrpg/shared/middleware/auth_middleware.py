"""Authentication seam: turns request credentials into a Principal.

Credential verification belongs to the identity service; this module only
adapts what it issues into the uniform Principal shape the policy engine
consumes. Each Authenticator declares whether a request carries its kind of
credential, and resolve_principal() dispatches to the first one that applies:

    Authorization: Bearer {jwt}  -> BearerTokenAuthenticator
    X-API-Key: {key}             -> ApiKeyAuthenticator

No credential at all yields None, which the guards treat as an implicit guest.
A credential that is present but fails verification is rejected with 401
rather than silently downgraded.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Sequence
from typing import Protocol

import jwt
from fastapi import Request

from src.swrpg.shared.auth.principal import Principal
from src.swrpg.shared.config import PolicyConfig
from src.swrpg.shared.errors import AuthenticationError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"


class Authenticator(Protocol):
    """One way of authenticating a request."""

    def applies(self, request: Request) -> bool: ...

    def authenticate(self, request: Request) -> Principal: ...


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("authorization", "")
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


class BearerTokenAuthenticator:
    """Validates HS256 session tokens and reads the roles claim."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        leeway_seconds: int = 60,
    ) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.leeway_seconds = leeway_seconds

    def applies(self, request: Request) -> bool:
        return _bearer_token(request) is not None

    def authenticate(self, request: Request) -> Principal:
        token = _bearer_token(request)
        if token is None:
            raise AuthenticationError("Invalid authorization format")

        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                leeway=self.leeway_seconds,
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.debug("JWT token has expired")
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidSignatureError as e:
            logger.warning("JWT token has invalid signature")
            raise AuthenticationError("Invalid token") from e
        except jwt.InvalidTokenError as e:
            logger.debug(f"JWT token rejected: {type(e).__name__}")
            raise AuthenticationError("Invalid token") from e

        user_id = payload.get("sub") or payload.get("id")
        if not user_id:
            raise AuthenticationError("Invalid token structure")

        roles = payload.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]

        return Principal(
            id=str(user_id),
            roles=tuple(str(role) for role in roles),
            username=payload.get("username"),
            auth_method="bearer",
        )


class ApiKeyAuthenticator:
    """Service callers presenting the shared API key."""

    def __init__(
        self,
        api_key: str,
        roles: Sequence[str] = ("user",),
        principal_id: str = "api-key",
    ) -> None:
        self.api_key = api_key
        self.roles = tuple(roles)
        self.principal_id = principal_id

    def applies(self, request: Request) -> bool:
        return bool(request.headers.get(API_KEY_HEADER))

    def authenticate(self, request: Request) -> Principal:
        presented = request.headers.get(API_KEY_HEADER, "")
        # Constant-time comparison prevents timing attacks
        if not secrets.compare_digest(presented, self.api_key):
            logger.warning("Invalid API key presented")
            raise AuthenticationError("Invalid API key")
        return Principal(
            id=self.principal_id,
            roles=self.roles,
            auth_method="api_key",
        )


def build_authenticators(config: PolicyConfig) -> list[Authenticator]:
    """Authenticators enabled by configuration, in dispatch order."""
    authenticators: list[Authenticator] = []
    if config.jwt_secret:
        authenticators.append(
            BearerTokenAuthenticator(
                secret=config.jwt_secret,
                algorithm=config.jwt_algorithm,
                issuer=config.jwt_issuer,
                leeway_seconds=config.jwt_leeway_seconds,
            )
        )
    else:
        logger.warning("JWT_SECRET not configured, bearer authentication disabled")
    if config.api_key:
        authenticators.append(
            ApiKeyAuthenticator(api_key=config.api_key, roles=config.api_key_roles)
        )
    return authenticators


def resolve_principal(
    request: Request, authenticators: Sequence[Authenticator]
) -> Principal | None:
    """Authenticate the request with the first applicable authenticator.

    Args:
        request: Incoming request
        authenticators: Candidates in priority order

    Returns:
        Principal, or None when the request carries no recognized credential

    Raises:
        AuthenticationError: A credential was presented but is invalid
    """
    for authenticator in authenticators:
        if authenticator.applies(request):
            return authenticator.authenticate(request)
    return None
