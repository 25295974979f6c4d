"""Authorization policy engine: role catalog, resolver and principal."""

from src.swrpg.shared.auth.catalog import (
    UNBOUNDED,
    CatalogError,
    RoleCatalog,
    RolePolicy,
    build_default_catalog,
    get_default_catalog,
)
from src.swrpg.shared.auth.enums import Permission, Role, UserStatus
from src.swrpg.shared.auth.policy import (
    PermissionContext,
    build_permission_context,
    can_perform_action,
    has_permission,
    permissions_for,
    rate_limit_for,
    resolve_highest_role,
    token_limit_for,
)
from src.swrpg.shared.auth.principal import GUEST_PRINCIPAL, Principal

__all__ = [
    "UNBOUNDED",
    "CatalogError",
    "GUEST_PRINCIPAL",
    "Permission",
    "PermissionContext",
    "Principal",
    "Role",
    "RoleCatalog",
    "RolePolicy",
    "UserStatus",
    "build_default_catalog",
    "build_permission_context",
    "can_perform_action",
    "get_default_catalog",
    "has_permission",
    "permissions_for",
    "rate_limit_for",
    "resolve_highest_role",
    "token_limit_for",
]
