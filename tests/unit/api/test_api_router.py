"""HTTP-level tests for the platform API.

Requests go through the full app: authentication middleware, guard
dependencies, admin operations and the policy error handler. The users table
is a moto table injected through dependency_overrides.
"""

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from src.swrpg.api.handler import create_app, lambda_handler
from src.swrpg.api.router import get_users_table
from src.swrpg.shared.config import PolicyConfig
from src.swrpg.shared.dynamodb import get_user_item
from tests.conftest import USERS_TABLE_NAME, put_user

TEST_SECRET = "router-test-secret-key-0123456789"
TEST_API_KEY = "svc-key-abc"


def token_for(user_id: str, *roles: str, expires_in=timedelta(minutes=15)) -> dict:
    token = jwt.encode(
        {
            "sub": user_id,
            "roles": list(roles),
            "exp": datetime.now(UTC) + expires_in,
        },
        TEST_SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(users_table):
    app = create_app(
        PolicyConfig(
            users_table=USERS_TABLE_NAME,
            environment="test",
            jwt_secret=TEST_SECRET,
            api_key=TEST_API_KEY,
            api_key_roles=("premium",),
        )
    )
    app.dependency_overrides[get_users_table] = lambda: users_table
    return TestClient(app)


class TestAuthentication:
    def test_invalid_token_is_401(self, client) -> None:
        response = client.get(
            "/api/v1/me/permissions", headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 401
        assert response.json() == {
            "error": {"code": "UNAUTHORIZED", "message": "Invalid token"}
        }

    def test_expired_token_is_401(self, client) -> None:
        headers = token_for("u-1", "admin", expires_in=timedelta(hours=-1))
        response = client.get("/api/v1/admin/users", headers=headers)
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Token expired"

    def test_no_credential_is_guest(self, client) -> None:
        response = client.get("/api/v1/me/permissions")
        assert response.status_code == 200
        assert response.json()["highest_role"] == "guest"
        assert response.json()["roles"] == ["guest"]

    def test_api_key_roles(self, client) -> None:
        response = client.get(
            "/api/v1/me/permissions", headers={"X-API-Key": TEST_API_KEY}
        )
        assert response.json()["highest_role"] == "premium"

    def test_wrong_api_key_is_401(self, client) -> None:
        response = client.get("/api/v1/me/permissions", headers={"X-API-Key": "bad"})
        assert response.status_code == 401


class TestMePermissions:
    def test_resolved_context(self, client) -> None:
        response = client.get(
            "/api/v1/me/permissions", headers=token_for("u-1", "user", "premium")
        )
        body = response.json()
        assert body["highest_role"] == "premium"
        assert body["rate_limit"] == 500
        assert body["token_limit"] == 4000
        assert body["permissions"] == sorted(body["permissions"])


class TestRoleUpdateRoute:
    def test_super_admin_updates_roles(self, client, users_table) -> None:
        put_user(users_table, "u-1", roles=["user"])

        response = client.put(
            "/api/v1/admin/users/u-1/roles",
            json={"roles": ["moderator"]},
            headers=token_for("root-1", "super_admin"),
        )

        assert response.status_code == 200
        assert response.json()["new_roles"] == ["moderator"]
        assert get_user_item(users_table, "u-1")["roles"] == ["moderator"]

    def test_admin_lacks_manage_roles(self, client, users_table) -> None:
        put_user(users_table, "u-1", roles=["user"])

        response = client.put(
            "/api/v1/admin/users/u-1/roles",
            json={"roles": ["admin"]},
            headers=token_for("admin-1", "admin"),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"
        assert get_user_item(users_table, "u-1")["roles"] == ["user"]

    def test_self_demotion(self, client, users_table) -> None:
        put_user(users_table, "root-1", roles=["super_admin"])

        response = client.put(
            "/api/v1/admin/users/root-1/roles",
            json={"roles": ["admin"]},
            headers=token_for("root-1", "super_admin"),
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": {
                "code": "SELF_DEMOTION_DENIED",
                "message": "Cannot remove super_admin role from yourself",
            }
        }

    def test_invalid_role_value(self, client, users_table) -> None:
        put_user(users_table, "u-1")
        response = client.put(
            "/api/v1/admin/users/u-1/roles",
            json={"roles": ["user", "jedi"]},
            headers=token_for("root-1", "super_admin"),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ROLE"

    def test_empty_roles(self, client, users_table) -> None:
        response = client.put(
            "/api/v1/admin/users/u-1/roles",
            json={"roles": []},
            headers=token_for("root-1", "super_admin"),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ROLES"

    def test_unknown_user(self, client) -> None:
        response = client.put(
            "/api/v1/admin/users/ghost/roles",
            json={"roles": ["user"]},
            headers=token_for("root-1", "super_admin"),
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UPDATE_FAILED"


class TestStatusUpdateRoute:
    def test_admin_bans_user(self, client, users_table) -> None:
        put_user(users_table, "u-1")

        response = client.put(
            "/api/v1/admin/users/u-1/status",
            json={"status": "banned", "reason": "fraud"},
            headers=token_for("admin-1", "admin"),
        )

        assert response.status_code == 200
        assert response.json() == {
            "user_id": "u-1",
            "new_status": "banned",
            "reason": "fraud",
        }

    def test_self_ban(self, client, users_table) -> None:
        put_user(users_table, "admin-1", roles=["admin"])
        response = client.put(
            "/api/v1/admin/users/admin-1/status",
            json={"status": "banned"},
            headers=token_for("admin-1", "admin"),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SELF_ACTION_DENIED"

    def test_invalid_status(self, client, users_table) -> None:
        put_user(users_table, "u-1")
        response = client.put(
            "/api/v1/admin/users/u-1/status",
            json={"status": "frozen"},
            headers=token_for("admin-1", "admin"),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS"

    def test_moderator_denied(self, client) -> None:
        response = client.put(
            "/api/v1/admin/users/u-1/status",
            json={"status": "banned"},
            headers=token_for("mod-1", "moderator"),
        )
        assert response.status_code == 403


class TestAdminReads:
    def test_list_users(self, client, users_table) -> None:
        put_user(users_table, "u-1", email="rey@example.com")
        put_user(users_table, "u-2", roles=["premium"])

        response = client.get(
            "/api/v1/admin/users?role=premium", headers=token_for("admin-1", "admin")
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["users"][0]["user_id"] == "u-2"

    def test_list_users_search(self, client, users_table) -> None:
        put_user(users_table, "u-1", username="Rey", email="rey@jakku.org")
        put_user(users_table, "u-2", username="Finn", email="fn2187@order.mil")

        response = client.get(
            "/api/v1/admin/users?search=JAKKU", headers=token_for("admin-1", "admin")
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["users"][0]["username"] == "Rey"

    def test_list_rejects_unknown_role_filter(self, client) -> None:
        response = client.get(
            "/api/v1/admin/users?role=jedi", headers=token_for("admin-1", "admin")
        )
        assert response.status_code == 422

    def test_user_details(self, client, users_table) -> None:
        put_user(users_table, "u-1", roles=["user", "moderator"])
        response = client.get(
            "/api/v1/admin/users/u-1", headers=token_for("admin-1", "admin")
        )
        assert response.status_code == 200
        assert response.json()["highest_role"] == "moderator"

    def test_user_details_not_found(self, client) -> None:
        response = client.get(
            "/api/v1/admin/users/ghost", headers=token_for("admin-1", "admin")
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "USER_NOT_FOUND"

    def test_stats(self, client, users_table) -> None:
        put_user(users_table, "u-1")
        response = client.get(
            "/api/v1/admin/stats", headers=token_for("admin-1", "admin")
        )
        assert response.json()["total_users"] == 1

    def test_stats_denied_for_premium(self, client) -> None:
        response = client.get(
            "/api/v1/admin/stats", headers=token_for("u-1", "premium")
        )
        assert response.status_code == 403

    def test_roles_catalog_admin_only(self, client) -> None:
        denied = client.get(
            "/api/v1/admin/roles", headers=token_for("mod-1", "moderator")
        )
        assert denied.status_code == 403
        assert denied.json()["error"]["code"] == "INSUFFICIENT_ROLE_LEVEL"

        allowed = client.get("/api/v1/admin/roles", headers=token_for("a-1", "admin"))
        assert allowed.status_code == 200
        assert allowed.json()["role_hierarchy"][0] == "super_admin"


class TestGenerationPreflight:
    def test_user_over_token_limit(self, client) -> None:
        response = client.post(
            "/api/v1/generation/preflight",
            json={"action": "generate_character", "maxTokens": 5000},
            headers=token_for("u-1", "user"),
        )
        assert response.status_code == 400
        assert response.json() == {
            "error": {
                "code": "TOKEN_LIMIT_EXCEEDED",
                "message": "Token limit exceeded. Maximum allowed: 2000, requested: 5000",
            }
        }

    def test_quoted_token_count_still_limited(self, client) -> None:
        response = client.post(
            "/api/v1/generation/preflight",
            json={"maxTokens": "9000"},
            headers=token_for("u-1", "user"),
        )
        assert response.status_code == 400
        assert response.json() == {
            "error": {
                "code": "TOKEN_LIMIT_EXCEEDED",
                "message": "Token limit exceeded. Maximum allowed: 2000, requested: 9000",
            }
        }

    def test_overflowing_token_count_is_client_error(self, client) -> None:
        response = client.post(
            "/api/v1/generation/preflight",
            content=b'{"maxTokens": 1e400}',
            headers={
                **token_for("admin-1", "admin"),
                "content-type": "application/json",
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TOKEN_REQUEST"

    def test_default_request_passes(self, client) -> None:
        response = client.post(
            "/api/v1/generation/preflight",
            json={},
            headers=token_for("u-1", "user"),
        )
        assert response.status_code == 200
        assert response.json() == {
            "action": "generate_character",
            "action_allowed": True,
            "token_limit": 2000,
            "rate_limit": 100,
            "highest_role": "user",
        }

    def test_action_reported_not_enforced(self, client) -> None:
        response = client.post(
            "/api/v1/generation/preflight",
            json={"action": "export_data", "maxTokens": 1000},
            headers=token_for("u-1", "user"),
        )
        assert response.status_code == 200
        assert response.json()["action_allowed"] is False

    def test_unmapped_action_not_allowed(self, client) -> None:
        response = client.post(
            "/api/v1/generation/preflight",
            json={"action": "delete_universe"},
            headers=token_for("root-1", "super_admin"),
        )
        assert response.json()["action_allowed"] is False

    def test_guest_denied(self, client) -> None:
        response = client.post("/api/v1/generation/preflight", json={})
        assert response.status_code == 403


class TestLambdaEntryPoint:
    def test_handler_is_callable(self) -> None:
        assert callable(lambda_handler)
