"""
Platform API Lambda Handler
===========================
FastAPI application exposing the policy-guarded admin and generation API.

For On-Call Engineers:
    If every request is answered as guest:
    1. Check JWT_SECRET is set for the environment
    2. Verify clients send "Authorization: Bearer <token>"
    If admins get UPDATE_FAILED:
    1. Verify USERS_TABLE points at the right table
    2. Check the target user still exists

For Developers:
    - Uses Mangum adapter for Lambda Function URL compatibility
    - create_app() takes an explicit config and role catalog; tests build
      their own app instead of patching module globals
    - Policy denials are rendered as {"error": {"code", "message"}}

Security Notes:
    - A credential that fails verification is rejected (401), never
      downgraded to guest
    - Denial responses carry the denial code, not the caller's roles
"""

import logging
from collections.abc import Sequence

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from mangum import Mangum

from src.swrpg.api.router import admin_router, generation_router, me_router
from src.swrpg.shared.auth.catalog import RoleCatalog, build_default_catalog
from src.swrpg.shared.config import PolicyConfig, load_config
from src.swrpg.shared.errors import (
    AuthenticationError,
    PolicyError,
    policy_error_response,
)
from src.swrpg.shared.middleware.auth_middleware import (
    Authenticator,
    build_authenticators,
    resolve_principal,
)

# Structured logging
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


async def policy_error_handler(request: Request, exc: PolicyError) -> JSONResponse:
    """Render a policy denial. Denials are expected, so WARNING not ERROR."""
    logger.warning(
        "Policy denial",
        extra={"code": exc.code.value, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=policy_error_response(exc))


def create_app(
    config: PolicyConfig | None = None,
    catalog: RoleCatalog | None = None,
    authenticators: Sequence[Authenticator] | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        config: Runtime configuration (defaults to environment)
        catalog: Role catalog (defaults to the production catalog)
        authenticators: Authentication strategies (defaults to those enabled by config)

    Returns:
        Configured FastAPI app
    """
    config = config or load_config()
    authenticators = (
        list(authenticators)
        if authenticators is not None
        else build_authenticators(config)
    )

    app = FastAPI(title="swrpg platform API")
    app.state.role_catalog = catalog or build_default_catalog()
    app.state.default_requested_tokens = config.default_requested_tokens

    @app.middleware("http")
    async def authenticate(request: Request, call_next):
        try:
            request.state.principal = resolve_principal(request, authenticators)
        except AuthenticationError as e:
            return await policy_error_handler(request, e)
        return await call_next(request)

    app.add_exception_handler(PolicyError, policy_error_handler)
    app.include_router(admin_router)
    app.include_router(me_router)
    app.include_router(generation_router)

    logger.info(
        "Platform API configured",
        extra={
            "environment": config.environment,
            "authenticators": [type(a).__name__ for a in authenticators],
        },
    )
    return app


app = create_app()

# Lambda entry point
lambda_handler = Mangum(app, lifespan="off")
