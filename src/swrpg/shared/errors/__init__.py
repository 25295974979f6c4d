"""Shared error types for the policy engine and admin API."""

from src.swrpg.shared.errors.policy_errors import (
    AuthenticationError,
    InsufficientPermissionsError,
    InsufficientRoleError,
    InsufficientRoleLevelError,
    InvalidPermissionError,
    InvalidRoleError,
    InvalidRolesError,
    InvalidRoleValueError,
    InvalidStatusError,
    InvalidTokenRequestError,
    PolicyError,
    PolicyErrorCode,
    SelfActionDeniedError,
    SelfDemotionDeniedError,
    TokenLimitExceededError,
    UpdateFailedError,
    UserNotFoundError,
    policy_error_response,
)

__all__ = [
    "AuthenticationError",
    "InsufficientPermissionsError",
    "InsufficientRoleError",
    "InsufficientRoleLevelError",
    "InvalidPermissionError",
    "InvalidRoleError",
    "InvalidRolesError",
    "InvalidRoleValueError",
    "InvalidStatusError",
    "InvalidTokenRequestError",
    "PolicyError",
    "PolicyErrorCode",
    "SelfActionDeniedError",
    "SelfDemotionDeniedError",
    "TokenLimitExceededError",
    "UpdateFailedError",
    "UserNotFoundError",
    "policy_error_response",
]
