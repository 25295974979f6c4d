"""Policy resolution: effective role, permissions and quotas for a principal.

Every function here is pure and synchronous over its inputs plus an
immutable RoleCatalog, so they are safe to call from any number of
concurrent requests.

Single-highest-role rule:
    Permissions and quotas come from the principal's single highest-ranked
    role. Permissions of other roles held at the same time are NOT unioned
    in, e.g. a premium+moderator principal gets moderator's set and loses
    export_data. This mirrors the production policy and is flagged for
    product owners; do not "fix" it here without sign-off.

Usage:
    from src.swrpg.shared.auth.policy import has_permission

    if has_permission(principal.roles, Permission.EXPORT_DATA):
        ...
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from src.swrpg.shared.auth.catalog import RoleCatalog, get_default_catalog
from src.swrpg.shared.auth.enums import Permission, Role

# Named platform actions -> permission gating them. Unmapped actions fail closed.
ACTION_PERMISSIONS = MappingProxyType(
    {
        "generate_character": Permission.GENERATE_CONTENT,
        "generate_location": Permission.GENERATE_CONTENT,
        "generate_quest": Permission.GENERATE_CONTENT,
        "advanced_generation": Permission.ADVANCED_GENERATION,
        "batch_generation": Permission.BATCH_GENERATION,
        "export_data": Permission.EXPORT_DATA,
        "manage_users": Permission.MANAGE_USERS,
        "view_system_stats": Permission.VIEW_SYSTEM_STATS,
        "moderate_content": Permission.MODERATE_CONTENT,
    }
)


@dataclass(frozen=True)
class PermissionContext:
    """Resolved authorization view of one principal for one request.

    Attributes:
        roles: Roles as declared by the principal (unvalidated, order kept)
        highest_role: Single highest-ranked recognized role
        permissions: Permission set of highest_role
        rate_limit: Requests per hour allowed for highest_role
        token_limit: Max tokens per generation allowed for highest_role
    """

    roles: tuple[str, ...]
    highest_role: Role
    permissions: frozenset[Permission]
    rate_limit: int
    token_limit: int

    def has_permission(self, permission: Permission | str) -> bool:
        return permission in self.permissions

    def to_dict(self) -> dict[str, Any]:
        return {
            "roles": list(self.roles),
            "highest_role": self.highest_role.value,
            "permissions": sorted(p.value for p in self.permissions),
            "rate_limit": self.rate_limit,
            "token_limit": self.token_limit,
        }


def _catalog(catalog: RoleCatalog | None) -> RoleCatalog:
    return catalog if catalog is not None else get_default_catalog()


def _as_roles(roles: Iterable[str] | str) -> tuple[str, ...]:
    # A bare string is one role, not a sequence of one-letter roles
    if isinstance(roles, str):
        return (str(roles),)
    return tuple(str(role) for role in roles)


def resolve_highest_role(
    roles: Iterable[str], catalog: RoleCatalog | None = None
) -> Role:
    """Return the most privileged recognized role in ``roles``.

    Scans the catalog from rank 0 downwards and returns the first role the
    principal holds. Unknown strings are ignored; an empty or fully
    unrecognized input resolves to guest.

    Args:
        roles: Declared roles (any iterable of strings, duplicates allowed,
            or a single role string)
        catalog: Optional catalog override

    Returns:
        The highest-ranked Role present, or Role.GUEST
    """
    held = set(_as_roles(roles))
    for role in _catalog(catalog).roles_by_rank():
        if role.value in held:
            return role
    return Role.GUEST


def permissions_for(
    roles: Iterable[str], catalog: RoleCatalog | None = None
) -> frozenset[Permission]:
    """Permissions of the single highest role (no union across held roles)."""
    cat = _catalog(catalog)
    return cat.policy_for(resolve_highest_role(roles, cat)).permissions


def has_permission(
    roles: Iterable[str],
    permission: Permission | str,
    catalog: RoleCatalog | None = None,
) -> bool:
    return permission in permissions_for(roles, catalog)


def rate_limit_for(roles: Iterable[str], catalog: RoleCatalog | None = None) -> int:
    """Requests per hour allowed for the highest held role."""
    cat = _catalog(catalog)
    return cat.policy_for(resolve_highest_role(roles, cat)).requests_per_hour


def token_limit_for(roles: Iterable[str], catalog: RoleCatalog | None = None) -> int:
    """Max tokens per generation allowed for the highest held role."""
    cat = _catalog(catalog)
    return cat.policy_for(resolve_highest_role(roles, cat)).max_tokens_per_generation


def action_to_permission(action: str) -> Permission | None:
    return ACTION_PERMISSIONS.get(action)


def can_perform_action(
    roles: Iterable[str], action: str, catalog: RoleCatalog | None = None
) -> bool:
    """Check a named platform action against the principal's permissions.

    Returns False for actions that have no mapped permission.
    """
    permission = action_to_permission(action)
    if permission is None:
        return False
    return has_permission(roles, permission, catalog)


def build_permission_context(
    roles: Iterable[str], catalog: RoleCatalog | None = None
) -> PermissionContext:
    """Resolve everything a guarded operation needs to know about its caller."""
    cat = _catalog(catalog)
    declared = _as_roles(roles)
    highest = resolve_highest_role(declared, cat)
    policy = cat.policy_for(highest)
    return PermissionContext(
        roles=declared,
        highest_role=highest,
        permissions=policy.permissions,
        rate_limit=policy.requests_per_hour,
        token_limit=policy.max_tokens_per_generation,
    )


def describe_roles(catalog: RoleCatalog | None = None) -> dict[str, Any]:
    """Catalog summary served to admins: per-role permissions and the hierarchy."""
    cat = _catalog(catalog)
    return {
        "roles": [
            {
                "role": role.value,
                "permissions": sorted(p.value for p in cat.policy_for(role).permissions),
            }
            for role in Role
        ],
        "permissions": [p.value for p in Permission],
        "role_hierarchy": [role.value for role in cat.roles_by_rank()],
    }
