"""Platform API routers guarded by the policy engine.

Endpoint Groups:
- /api/v1/admin/users/*     - User management (manage_users; roles need manage_roles)
- /api/v1/admin/stats       - User statistics (view_system_stats)
- /api/v1/admin/roles       - Role catalog (admin or higher)
- /api/v1/me/permissions    - Caller's resolved permission context
- /api/v1/generation/*      - Generation preflight (generate_content + token limit)

Routes only wire request data to the guard dependencies and to the admin
service functions; every decision is made in the policy engine.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from src.swrpg.api import admin as admin_service
from src.swrpg.shared.auth.enums import Permission, Role, UserStatus
from src.swrpg.shared.auth.policy import (
    PermissionContext,
    action_to_permission,
    describe_roles,
)
from src.swrpg.shared.config import load_config
from src.swrpg.shared.dynamodb import get_table
from src.swrpg.shared.middleware.enforcement import (
    attach_permission_context,
    get_catalog,
    get_principal,
    require_minimum_role,
    require_permission,
    validate_token_limit,
)

logger = logging.getLogger(__name__)


# Request models
class RoleUpdateRequest(BaseModel):
    """Request body for PUT /api/v1/admin/users/{user_id}/roles."""

    roles: list[Any]


class StatusUpdateRequest(BaseModel):
    """Request body for PUT /api/v1/admin/users/{user_id}/status."""

    status: str
    reason: str | None = Field(None, min_length=1, max_length=500)


class GenerationPreflightRequest(BaseModel):
    """Request body for POST /api/v1/generation/preflight."""

    model_config = ConfigDict(populate_by_name=True)

    action: str = "generate_character"
    max_tokens: int | None = Field(None, alias="maxTokens", ge=1)


# Create routers
admin_router = APIRouter(prefix="/api/v1/admin", tags=["admin"])
me_router = APIRouter(prefix="/api/v1/me", tags=["me"])
generation_router = APIRouter(prefix="/api/v1/generation", tags=["generation"])


def get_users_table():
    """Dependency to get the DynamoDB users table."""
    return get_table(load_config().users_table)


# =============================================================================
# Admin
# =============================================================================


@admin_router.get(
    "/users",
    dependencies=[Depends(require_permission(Permission.MANAGE_USERS))],
)
async def list_users(
    role: Role | None = None,
    status: UserStatus | None = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: str | None = Query(None, max_length=100),
    table=Depends(get_users_table),
):
    result = admin_service.list_users(
        table=table,
        role=role.value if role else None,
        status=status.value if status else None,
        limit=limit,
        offset=offset,
        search=search,
    )
    return JSONResponse(result.model_dump(mode="json"))


@admin_router.get(
    "/users/{user_id}",
    dependencies=[Depends(require_permission(Permission.MANAGE_USERS))],
)
async def get_user(
    user_id: str,
    request: Request,
    table=Depends(get_users_table),
):
    result = admin_service.get_user_details(table, user_id, get_catalog(request))
    return JSONResponse(result.model_dump(mode="json"))


@admin_router.put(
    "/users/{user_id}/roles",
    dependencies=[Depends(require_permission(Permission.MANAGE_ROLES))],
)
async def update_user_roles(
    user_id: str,
    body: RoleUpdateRequest,
    request: Request,
    table=Depends(get_users_table),
):
    """Replace a user's roles (super_admin only via manage_roles)."""
    result = admin_service.update_user_roles(
        table=table,
        actor=get_principal(request),
        target_id=user_id,
        new_roles=body.roles,
        catalog=get_catalog(request),
    )
    return JSONResponse(result.model_dump(mode="json"))


@admin_router.put(
    "/users/{user_id}/status",
    dependencies=[Depends(require_permission(Permission.MANAGE_USERS))],
)
async def update_user_status(
    user_id: str,
    body: StatusUpdateRequest,
    request: Request,
    table=Depends(get_users_table),
):
    result = admin_service.update_user_status(
        table=table,
        actor=get_principal(request),
        target_id=user_id,
        new_status=body.status,
        reason=body.reason,
        catalog=get_catalog(request),
    )
    return JSONResponse(result.model_dump(mode="json"))


@admin_router.get(
    "/stats",
    dependencies=[Depends(require_permission(Permission.VIEW_SYSTEM_STATS))],
)
async def get_system_stats(table=Depends(get_users_table)):
    result = admin_service.get_user_statistics(table)
    return JSONResponse(result.model_dump(mode="json"))


@admin_router.get(
    "/roles",
    dependencies=[Depends(require_minimum_role(Role.ADMIN))],
)
async def get_roles_and_permissions(request: Request):
    return JSONResponse(describe_roles(get_catalog(request)))


# =============================================================================
# Caller context
# =============================================================================


@me_router.get("/permissions")
async def get_my_permissions(
    context: PermissionContext = Depends(attach_permission_context),
):
    return JSONResponse(context.to_dict())


# =============================================================================
# Generation
# =============================================================================


@generation_router.post(
    "/preflight",
    dependencies=[Depends(require_permission(Permission.GENERATE_CONTENT))],
)
async def generation_preflight(
    body: GenerationPreflightRequest,
    context: PermissionContext = Depends(validate_token_limit),
):
    """Check a generation request against the caller's permissions and quotas.

    The token limit has already been enforced by validate_token_limit;
    the named action is reported rather than enforced so clients can grey
    out options the caller cannot use.
    """
    permission = action_to_permission(body.action)
    return JSONResponse(
        {
            "action": body.action,
            "action_allowed": permission is not None
            and context.has_permission(permission),
            "token_limit": context.token_limit,
            "rate_limit": context.rate_limit,
            "highest_role": context.highest_role.value,
        }
    )
