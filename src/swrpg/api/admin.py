"""Admin guard: privileged user-management operations.

Mutations on a user's roles and status go through this module only. Each one
is gated by a permission check on the acting principal and validates its
input before touching the users table, so a rejected call never leaves
partial state.

Role changes need manage_roles, which only super_admin holds; status changes
need manage_users.

Self-action guard rails:
    - A super_admin cannot strip super_admin from their own roles.
    - A principal cannot suspend or ban themselves (reactivation is allowed).

Writes are unconditional SETs keyed by user ID. Two admins editing the same
user concurrently race and the later write wins.

For On-Call Engineers:
    Role and status changes log "User roles updated" / "User status updated"
    at INFO with the acting principal's ID prefix. UPDATE_FAILED means the
    target record did not exist at write time.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from aws_xray_sdk.core import xray_recorder
from pydantic import BaseModel

from src.swrpg.shared.auth.audit import create_update_audit_entry
from src.swrpg.shared.auth.catalog import RoleCatalog
from src.swrpg.shared.auth.enums import (
    VALID_ROLES,
    VALID_STATUSES,
    Permission,
    Role,
    UserStatus,
)
from src.swrpg.shared.auth.policy import permissions_for, resolve_highest_role
from src.swrpg.shared.auth.principal import Principal
from src.swrpg.shared.dynamodb import get_user_item, scan_user_items, set_user_fields
from src.swrpg.shared.errors import (
    InvalidRolesError,
    InvalidRoleValueError,
    InvalidStatusError,
    SelfActionDeniedError,
    SelfDemotionDeniedError,
    UpdateFailedError,
    UserNotFoundError,
)
from src.swrpg.shared.logging_utils import sanitize_for_log
from src.swrpg.shared.middleware.enforcement import check_permission
from src.swrpg.shared.models.user import UserRecord

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


# =============================================================================
# Response models
# =============================================================================


class RoleUpdateResult(BaseModel):
    """Response for PUT /api/v1/admin/users/{user_id}/roles."""

    user_id: str
    new_roles: list[str]
    permissions: list[str]


class StatusUpdateResult(BaseModel):
    """Response for PUT /api/v1/admin/users/{user_id}/status."""

    user_id: str
    new_status: UserStatus
    reason: str | None = None


class UserSummary(BaseModel):
    user_id: str
    username: str | None = None
    email_masked: str | None = None
    roles: list[str]
    status: UserStatus


class UserDetail(UserSummary):
    highest_role: Role
    permissions: list[str]
    status_reason: str | None = None
    updated_by: str | None = None


class UserListResponse(BaseModel):
    users: list[UserSummary]
    total: int
    limit: int
    offset: int


class UserStatistics(BaseModel):
    total_users: int
    role_distribution: dict[str, int]
    status_distribution: dict[str, int]


def mask_email(email: str | None) -> str | None:
    """Mask email for admin listings: john@example.com -> j***@example.com"""
    if not email:
        return None
    try:
        local, domain = email.split("@")
        if len(local) <= 1:
            return f"*@{domain}"
        return f"{local[0]}***@{domain}"
    except ValueError:
        return "***"


def _summary(user: UserRecord) -> UserSummary:
    return UserSummary(
        user_id=user.user_id,
        username=user.username,
        email_masked=mask_email(user.email),
        roles=user.roles,
        status=user.status,
    )


def _prefix(value: str | None) -> str | None:
    return sanitize_for_log(value[:8]) if value else None


def _matches_search(user: UserRecord, search: str) -> bool:
    needle = search.casefold()
    return any(
        needle in field.casefold() for field in (user.username, user.email) if field
    )


# =============================================================================
# Mutations
# =============================================================================


def _validate_roles(new_roles: Any) -> list[str]:
    if not isinstance(new_roles, list | tuple) or len(new_roles) == 0:
        raise InvalidRolesError("Roles must be a non-empty array")
    for role in new_roles:
        if not isinstance(role, str) or role not in VALID_ROLES:
            raise InvalidRoleValueError(f"Invalid role: {sanitize_for_log(role, 50)}")
    return list(new_roles)


@xray_recorder.capture("update_user_roles")
def update_user_roles(
    table: Any,
    actor: Principal,
    target_id: str,
    new_roles: Any,
    catalog: RoleCatalog | None = None,
) -> RoleUpdateResult:
    """Replace a user's roles.

    Args:
        table: DynamoDB users Table resource
        actor: Principal performing the change
        target_id: User whose roles are replaced
        new_roles: Non-empty list of recognized role strings
        catalog: Optional catalog override

    Returns:
        RoleUpdateResult with the new roles and the permissions they grant

    Raises:
        InsufficientPermissionsError: actor lacks manage_roles
        InvalidRolesError: new_roles is not a non-empty list
        InvalidRoleValueError: an element is not a recognized role
        SelfDemotionDeniedError: a super_admin would drop their own super_admin
        UpdateFailedError: no user record matched target_id
    """
    check_permission(actor, Permission.MANAGE_ROLES, catalog)
    roles = _validate_roles(new_roles)

    if (
        actor.id == target_id
        and resolve_highest_role(actor.roles, catalog) == Role.SUPER_ADMIN
        and Role.SUPER_ADMIN.value not in roles
    ):
        logger.warning(
            "Self-demotion denied",
            extra={"actor_id_prefix": _prefix(actor.id)},
        )
        raise SelfDemotionDeniedError("Cannot remove super_admin role from yourself")

    fields: dict[str, Any] = {"roles": roles, **create_update_audit_entry(actor.id)}
    if not set_user_fields(table, target_id, fields):
        raise UpdateFailedError()

    logger.info(
        "User roles updated",
        extra={
            "target_user_id_prefix": _prefix(target_id),
            "new_roles": roles,
            "updated_by_prefix": _prefix(actor.id),
        },
    )

    return RoleUpdateResult(
        user_id=target_id,
        new_roles=roles,
        permissions=sorted(p.value for p in permissions_for(roles, catalog)),
    )


@xray_recorder.capture("update_user_status")
def update_user_status(
    table: Any,
    actor: Principal,
    target_id: str,
    new_status: Any,
    reason: str | None = None,
    catalog: RoleCatalog | None = None,
) -> StatusUpdateResult:
    """Set a user's account status.

    Any status may follow any other for non-self targets. Enforcing what a
    banned or suspended status means for later requests is the identity
    service's job, not this one.

    Raises:
        InsufficientPermissionsError: actor lacks manage_users
        InvalidStatusError: new_status is not active, suspended or banned
        SelfActionDeniedError: actor would suspend or ban themselves
        UpdateFailedError: no user record matched target_id
    """
    check_permission(actor, Permission.MANAGE_USERS, catalog)

    if not isinstance(new_status, str) or new_status not in VALID_STATUSES:
        raise InvalidStatusError(
            "Invalid status. Must be: active, suspended, or banned"
        )
    status = UserStatus(new_status)

    if actor.id == target_id and status != UserStatus.ACTIVE:
        logger.warning(
            "Self status change denied",
            extra={"actor_id_prefix": _prefix(actor.id), "new_status": status.value},
        )
        raise SelfActionDeniedError("Cannot suspend or ban yourself")

    fields: dict[str, Any] = {"status": status.value}
    if reason:
        fields["status_reason"] = reason
    fields.update(create_update_audit_entry(actor.id))

    if not set_user_fields(table, target_id, fields):
        raise UpdateFailedError()

    logger.info(
        "User status updated",
        extra={
            "target_user_id_prefix": _prefix(target_id),
            "new_status": status.value,
            "reason": sanitize_for_log(reason[:50]) if reason else None,
            "updated_by_prefix": _prefix(actor.id),
        },
    )

    return StatusUpdateResult(user_id=target_id, new_status=status, reason=reason)


# =============================================================================
# Reads
# =============================================================================


def get_user_details(
    table: Any, user_id: str, catalog: RoleCatalog | None = None
) -> UserDetail:
    """Fetch one user with their effective role and permissions."""
    item = get_user_item(table, user_id)
    if item is None:
        raise UserNotFoundError()

    user = UserRecord.from_dynamodb_item(item)
    return UserDetail(
        **_summary(user).model_dump(),
        highest_role=resolve_highest_role(user.roles, catalog),
        permissions=sorted(p.value for p in permissions_for(user.roles, catalog)),
        status_reason=user.status_reason,
        updated_by=user.updated_by,
    )


def list_users(
    table: Any,
    role: str | None = None,
    status: str | None = None,
    limit: int = 20,
    offset: int = 0,
    search: str | None = None,
) -> UserListResponse:
    """List users, optionally filtered by a held role, status and/or search text.

    ``search`` matches case-insensitively anywhere in the username or email.
    Results are ordered by user ID so pages are stable between calls.
    """
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)

    users = [UserRecord.from_dynamodb_item(item) for item in scan_user_items(table)]
    if role:
        users = [user for user in users if role in user.roles]
    if status:
        users = [user for user in users if user.status.value == status]
    if search:
        users = [user for user in users if _matches_search(user, search)]
    users.sort(key=lambda user: user.user_id)

    return UserListResponse(
        users=[_summary(user) for user in users[offset : offset + limit]],
        total=len(users),
        limit=limit,
        offset=offset,
    )


def get_user_statistics(table: Any) -> UserStatistics:
    """Role and status distribution across all users.

    A user holding several roles counts once under each of them.
    """
    users = [UserRecord.from_dynamodb_item(item) for item in scan_user_items(table)]

    roles: Counter[str] = Counter()
    statuses: Counter[str] = Counter()
    for user in users:
        roles.update(set(user.roles))
        statuses[user.status.value] += 1

    return UserStatistics(
        total_users=len(users),
        role_distribution=dict(roles),
        status_distribution=dict(statuses),
    )
