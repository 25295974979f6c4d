"""Policy error types for authorization denials and admin guard rails.

Every denial raised by the policy engine is an operational error: it carries a
stable machine-readable code, a human-readable message and the HTTP status the
boundary should answer with. None of them are retried; an authorization
failure does not change without a different principal or a prior admin action.

Decoration-time errors (InvalidRoleError, InvalidPermissionError) are
programming mistakes and subclass ValueError so they fail app startup.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class PolicyErrorCode(str, Enum):
    """Machine-readable denial kinds returned in error responses."""

    UNAUTHORIZED = "UNAUTHORIZED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
    INSUFFICIENT_ROLE_LEVEL = "INSUFFICIENT_ROLE_LEVEL"
    TOKEN_LIMIT_EXCEEDED = "TOKEN_LIMIT_EXCEEDED"
    INVALID_TOKEN_REQUEST = "INVALID_TOKEN_REQUEST"
    SELF_DEMOTION_DENIED = "SELF_DEMOTION_DENIED"
    SELF_ACTION_DENIED = "SELF_ACTION_DENIED"
    INVALID_ROLE = "INVALID_ROLE"
    INVALID_ROLES = "INVALID_ROLES"
    INVALID_STATUS = "INVALID_STATUS"
    UPDATE_FAILED = "UPDATE_FAILED"
    USER_NOT_FOUND = "USER_NOT_FOUND"


class PolicyError(Exception):
    """Base class for structured policy denials.

    Subclasses pin ``code`` and ``status_code``; the message is per instance.
    """

    code: PolicyErrorCode = PolicyErrorCode.INSUFFICIENT_PERMISSIONS
    status_code: int = 403

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return policy_error_response(self)


class AuthenticationError(PolicyError):
    """Raised when a credential is present but cannot be verified."""

    code = PolicyErrorCode.UNAUTHORIZED
    status_code = 401


class InsufficientPermissionsError(PolicyError):
    code = PolicyErrorCode.INSUFFICIENT_PERMISSIONS
    status_code = 403


class InsufficientRoleError(PolicyError):
    code = PolicyErrorCode.INSUFFICIENT_ROLE
    status_code = 403


class InsufficientRoleLevelError(PolicyError):
    code = PolicyErrorCode.INSUFFICIENT_ROLE_LEVEL
    status_code = 403


class TokenLimitExceededError(PolicyError):
    """Raised when a generation request asks for more tokens than allowed."""

    code = PolicyErrorCode.TOKEN_LIMIT_EXCEEDED
    status_code = 400

    def __init__(self, requested: int | float, limit: int) -> None:
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Token limit exceeded. Maximum allowed: {limit}, requested: {requested}"
        )


class InvalidTokenRequestError(PolicyError):
    """Raised when a requested generation size is not a finite number."""

    code = PolicyErrorCode.INVALID_TOKEN_REQUEST
    status_code = 400


class SelfDemotionDeniedError(PolicyError):
    code = PolicyErrorCode.SELF_DEMOTION_DENIED
    status_code = 400


class SelfActionDeniedError(PolicyError):
    code = PolicyErrorCode.SELF_ACTION_DENIED
    status_code = 400


class InvalidRolesError(PolicyError):
    """Raised when the roles payload is not a non-empty list."""

    code = PolicyErrorCode.INVALID_ROLES
    status_code = 400


class InvalidRoleValueError(PolicyError):
    """Raised when one element of a roles payload is not a recognized role."""

    code = PolicyErrorCode.INVALID_ROLE
    status_code = 400


class InvalidStatusError(PolicyError):
    code = PolicyErrorCode.INVALID_STATUS
    status_code = 400


class UpdateFailedError(PolicyError):
    """Raised when a mutation matched no record.

    A vanished record and a lost race with a concurrent delete look the same
    to the caller; both surface as not-found.
    """

    code = PolicyErrorCode.UPDATE_FAILED
    status_code = 404

    def __init__(self, message: str = "User not found or update failed") -> None:
        super().__init__(message)


class UserNotFoundError(PolicyError):
    code = PolicyErrorCode.USER_NOT_FOUND
    status_code = 404

    def __init__(self, message: str = "User not found") -> None:
        super().__init__(message)


class InvalidRoleError(ValueError):
    """Raised at decoration time for invalid role parameters.

    This error indicates a programming mistake (typo in role name)
    and should cause the application to fail to start.
    """

    def __init__(self, role: str, valid_roles: frozenset[str]) -> None:
        self.role = role
        self.valid_roles = valid_roles
        super().__init__(f"Invalid role '{role}'. Valid roles: {sorted(valid_roles)}")


class InvalidPermissionError(ValueError):
    """Raised at decoration time for invalid permission parameters."""

    def __init__(self, permission: str, valid_permissions: frozenset[str]) -> None:
        self.permission = permission
        self.valid_permissions = valid_permissions
        super().__init__(
            f"Invalid permission '{permission}'. "
            f"Valid permissions: {sorted(valid_permissions)}"
        )


def policy_error_response(error: PolicyError) -> dict[str, Any]:
    """Create a JSON response dict for a policy error.

    Args:
        error: The PolicyError to render.

    Returns:
        Dict suitable for JSONResponse with error details.

    Example:
        return JSONResponse(
            status_code=error.status_code,
            content=policy_error_response(error),
        )
    """
    return {
        "error": {
            "code": error.code.value,
            "message": error.message,
        }
    }
