"""Request-pipeline guards built on the policy resolver.

Each guard is a FastAPI dependency that runs before the route body. A guard
either returns the caller's PermissionContext or raises a PolicyError; a
raised error short-circuits the request so the protected operation never
starts and no side effect occurs.

Usage:
    from src.swrpg.shared.middleware import require_permission

    @router.put(
        "/users/{user_id}/status",
        dependencies=[Depends(require_permission("manage_users"))],
    )
    async def update_status(...):
        ...

The caller's principal is read from ``request.state.principal`` (set by the
authentication middleware in the API handler); a missing principal is the
implicit guest. The role catalog comes from ``request.app.state.role_catalog``
when the app was built with one, otherwise the process default.

Security:
    - Arguments are validated at decoration time; a typo fails app startup
    - Denials are logged with the principal's roles for audit
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from typing import Any

from fastapi import Request

from src.swrpg.shared.auth.catalog import RoleCatalog, get_default_catalog
from src.swrpg.shared.auth.enums import VALID_PERMISSIONS, VALID_ROLES, Permission, Role
from src.swrpg.shared.auth.policy import (
    PermissionContext,
    build_permission_context,
    has_permission,
    resolve_highest_role,
    token_limit_for,
)
from src.swrpg.shared.auth.principal import Principal, principal_or_guest
from src.swrpg.shared.config import DEFAULT_REQUESTED_TOKENS
from src.swrpg.shared.errors import (
    InsufficientPermissionsError,
    InsufficientRoleError,
    InsufficientRoleLevelError,
    InvalidPermissionError,
    InvalidRoleError,
    InvalidTokenRequestError,
    TokenLimitExceededError,
)
from src.swrpg.shared.logging_utils import sanitize_for_log

logger = logging.getLogger(__name__)

# Body fields carrying a generation size, checked in order
TOKEN_FIELDS = ("maxTokens", "max_tokens")


# =============================================================================
# Request accessors
# =============================================================================


def get_principal(request: Request) -> Principal:
    return principal_or_guest(getattr(request.state, "principal", None))


def get_catalog(request: Request) -> RoleCatalog:
    catalog = getattr(request.app.state, "role_catalog", None)
    return catalog if catalog is not None else get_default_catalog()


def _deny_extra(
    principal: Principal, highest_role: Role, endpoint: str | None
) -> dict[str, Any]:
    return {
        "principal_id": sanitize_for_log(principal.id[:8]) if principal.id else None,
        "roles": list(principal.roles),
        "highest_role": highest_role.value,
        "endpoint": sanitize_for_log(endpoint) if endpoint else None,
    }


# =============================================================================
# Checks (framework independent)
# =============================================================================


def check_permission(
    principal: Principal | None,
    permission: Permission | str,
    catalog: RoleCatalog | None = None,
    endpoint: str | None = None,
) -> None:
    """Raise InsufficientPermissionsError unless the principal holds ``permission``."""
    principal = principal_or_guest(principal)
    if has_permission(principal.roles, permission, catalog):
        return

    highest_role = resolve_highest_role(principal.roles, catalog)
    logger.warning(
        "Permission denied",
        extra={
            **_deny_extra(principal, highest_role, endpoint),
            "required_permission": str(permission),
        },
    )
    raise InsufficientPermissionsError(
        f"Insufficient permissions. Required: {permission}"
    )


def check_any_role(
    principal: Principal | None,
    allowed_roles: Iterable[Role | str],
    catalog: RoleCatalog | None = None,
    endpoint: str | None = None,
) -> None:
    """Raise InsufficientRoleError unless the highest role is in ``allowed_roles``."""
    principal = principal_or_guest(principal)
    allowed = [str(role) for role in allowed_roles]
    highest_role = resolve_highest_role(principal.roles, catalog)
    if highest_role.value in allowed:
        return

    logger.warning(
        "Role access denied",
        extra={
            **_deny_extra(principal, highest_role, endpoint),
            "allowed_roles": allowed,
        },
    )
    raise InsufficientRoleError(f"Access denied. Required roles: {', '.join(allowed)}")


def check_minimum_role(
    principal: Principal | None,
    minimum_role: Role | str,
    catalog: RoleCatalog | None = None,
    endpoint: str | None = None,
) -> None:
    """Raise InsufficientRoleLevelError when the principal ranks below ``minimum_role``.

    Lower rank is more privileged, so the principal passes when
    rank(highest_role) <= rank(minimum_role).
    """
    principal = principal_or_guest(principal)
    cat = catalog if catalog is not None else get_default_catalog()
    highest_role = resolve_highest_role(principal.roles, cat)
    if cat.rank_of(highest_role) <= cat.rank_of(minimum_role):
        return

    logger.warning(
        "Minimum role requirement not met",
        extra={
            **_deny_extra(principal, highest_role, endpoint),
            "minimum_role": str(minimum_role),
        },
    )
    raise InsufficientRoleLevelError(
        f"Access denied. Minimum role required: {minimum_role}"
    )


def _is_finite(value: int | float) -> bool:
    # ints are exact; math.isfinite would overflow on very large ones
    return isinstance(value, int) or math.isfinite(value)


def _is_unset(value: Any) -> bool:
    # None, false, 0 and "" fall through to the next field / the default
    if value is None or value is False or value == "":
        return True
    return isinstance(value, int | float) and not isinstance(value, bool) and value == 0


def _token_count(field_name: str, value: Any) -> int | float:
    """Coerce a body value to a finite token count.

    Raises:
        InvalidTokenRequestError: Value is not numeric or not finite
    """
    number: int | float | None = None
    if isinstance(value, int | float) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                number = None

    if number is None or not _is_finite(number):
        raise InvalidTokenRequestError(f"{field_name} must be a finite number")
    return number


def requested_tokens_from(
    body: Any, default: int = DEFAULT_REQUESTED_TOKENS
) -> int | float:
    """Read the requested generation size from a request body.

    The first of ``maxTokens`` / ``max_tokens`` that is set wins. Numeric
    strings are read as numbers. Absent, null, zero or empty values fall back
    to ``default``.

    Raises:
        InvalidTokenRequestError: A set value is not a finite number
    """
    if not isinstance(body, dict):
        return default
    for field_name in TOKEN_FIELDS:
        value = body.get(field_name)
        if _is_unset(value):
            continue
        return _token_count(field_name, value)
    return default


def check_token_limit(
    principal: Principal | None,
    requested: int | float,
    catalog: RoleCatalog | None = None,
) -> int:
    """Raise TokenLimitExceededError when ``requested`` exceeds the role's limit.

    Returns:
        The principal's token limit

    Raises:
        InvalidTokenRequestError: ``requested`` is not finite
        TokenLimitExceededError: ``requested`` is above the limit
    """
    if not _is_finite(requested):
        raise InvalidTokenRequestError("Requested tokens must be a finite number")

    principal = principal_or_guest(principal)
    limit = token_limit_for(principal.roles, catalog)
    if requested > limit:
        shown = requested
        if isinstance(requested, float) and requested.is_integer():
            shown = int(requested)
        logger.info(
            "Token limit exceeded",
            extra={"requested": shown, "limit": limit},
        )
        raise TokenLimitExceededError(requested=shown, limit=limit)
    return limit


# =============================================================================
# FastAPI dependencies
# =============================================================================


def attach_permission_context(request: Request) -> PermissionContext:
    """Resolve and cache the caller's PermissionContext on the request. Never rejects."""
    context = getattr(request.state, "permission_context", None)
    if context is None:
        principal = get_principal(request)
        context = build_permission_context(principal.roles, get_catalog(request))
        request.state.permission_context = context
    return context


def require_permission(
    permission: Permission | str,
) -> Callable[[Request], PermissionContext]:
    """Dependency factory rejecting callers without ``permission``.

    Raises:
        InvalidPermissionError: At decoration time if permission is not valid.
    """
    if permission not in VALID_PERMISSIONS:
        raise InvalidPermissionError(str(permission), VALID_PERMISSIONS)

    def dependency(request: Request) -> PermissionContext:
        check_permission(
            get_principal(request),
            permission,
            get_catalog(request),
            endpoint=request.url.path,
        )
        return attach_permission_context(request)

    return dependency


def require_any_role(
    allowed_roles: Iterable[Role | str],
) -> Callable[[Request], PermissionContext]:
    """Dependency factory rejecting callers whose highest role is not allowed.

    Raises:
        InvalidRoleError: At decoration time if any role is not valid.
    """
    allowed = tuple(str(role) for role in allowed_roles)
    for role in allowed:
        if role not in VALID_ROLES:
            raise InvalidRoleError(role, VALID_ROLES)

    def dependency(request: Request) -> PermissionContext:
        check_any_role(
            get_principal(request),
            allowed,
            get_catalog(request),
            endpoint=request.url.path,
        )
        return attach_permission_context(request)

    return dependency


def require_minimum_role(
    minimum_role: Role | str,
) -> Callable[[Request], PermissionContext]:
    """Dependency factory rejecting callers less privileged than ``minimum_role``.

    Raises:
        InvalidRoleError: At decoration time if role is not valid.
    """
    if minimum_role not in VALID_ROLES:
        raise InvalidRoleError(str(minimum_role), VALID_ROLES)

    def dependency(request: Request) -> PermissionContext:
        check_minimum_role(
            get_principal(request),
            minimum_role,
            get_catalog(request),
            endpoint=request.url.path,
        )
        return attach_permission_context(request)

    return dependency


async def validate_token_limit(request: Request) -> PermissionContext:
    """Reject generation requests asking for more tokens than the caller's role allows."""
    try:
        body = await request.json()
    except ValueError:
        # Malformed JSON, bad encoding, or an integer literal too long to parse
        body = None

    default = getattr(
        request.app.state, "default_requested_tokens", DEFAULT_REQUESTED_TOKENS
    )
    check_token_limit(
        get_principal(request),
        requested_tokens_from(body, default),
        get_catalog(request),
    )
    return attach_permission_context(request)
