"""Environment-backed configuration for the policy engine and admin API.

For On-Call Engineers:
    - USERS_TABLE must point at the DynamoDB users table for the environment.
    - If every request is treated as guest, check JWT_SECRET is set.
    - API_KEY_ROLES is a comma-separated role list granted to API key callers.

For Developers:
    - Call load_config() instead of reading os.environ directly so tests can
      build a PolicyConfig by hand.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_REQUESTED_TOKENS = 500


@dataclass(frozen=True)
class PolicyConfig:
    """Runtime configuration.

    Attributes:
        users_table: DynamoDB table holding user records
        environment: Deployment environment name (dev, test, preprod, prod)
        jwt_secret: HMAC secret for bearer tokens (None disables bearer auth)
        jwt_algorithm: JWT algorithm (default: HS256)
        jwt_issuer: Expected issuer claim (None skips the check)
        jwt_leeway_seconds: Clock skew tolerance
        api_key: Service API key (None disables API key auth)
        api_key_roles: Roles granted to API key callers
        default_requested_tokens: Token request assumed when a body omits it
    """

    users_table: str = ""
    environment: str = "dev"
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_issuer: str | None = None
    jwt_leeway_seconds: int = 60
    api_key: str | None = None
    api_key_roles: tuple[str, ...] = ("user",)
    default_requested_tokens: int = DEFAULT_REQUESTED_TOKENS


def _split_roles(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def load_config() -> PolicyConfig:
    """Load configuration from environment.

    Returns:
        PolicyConfig populated from environment variables
    """
    return PolicyConfig(
        users_table=os.environ.get("USERS_TABLE", ""),
        environment=os.environ.get("ENVIRONMENT", "dev"),
        jwt_secret=os.environ.get("JWT_SECRET") or None,
        jwt_algorithm=os.environ.get("JWT_ALGORITHM", "HS256"),
        jwt_issuer=os.environ.get("JWT_ISSUER") or None,
        jwt_leeway_seconds=int(os.environ.get("JWT_LEEWAY_SECONDS", "60")),
        api_key=os.environ.get("API_KEY") or None,
        api_key_roles=_split_roles(os.environ.get("API_KEY_ROLES", "user")),
        default_requested_tokens=int(
            os.environ.get("DEFAULT_REQUESTED_TOKENS", str(DEFAULT_REQUESTED_TOKENS))
        ),
    )
