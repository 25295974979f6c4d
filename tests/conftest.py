"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

For On-Call Engineers:
    If tests fail with AWS credential errors:
    1. Ensure moto is properly mocking (check the users_table fixture)
    2. Verify AWS env vars are set in fixtures

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - All DynamoDB access uses moto mocks (no real AWS calls)
    - Add new shared fixtures here, test-specific fixtures in test files
    - Assert on expected logs explicitly with caplog and the helpers below
"""

import logging
import os

import boto3
import pytest
from moto import mock_aws

# Set default test environment variables at module load time
# This allows test files to import modules that read env vars at import time
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("USERS_TABLE", "test-swrpg-users")
os.environ.setdefault("ENVIRONMENT", "test")

# Without an active segment the X-Ray SDK logs an error for every captured
# call; disabling it makes the capture decorators pass through.
os.environ.setdefault("AWS_XRAY_SDK_ENABLED", "false")

USERS_TABLE_NAME = "test-swrpg-users"


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables after each test.

    Ensures tests don't pollute each other's environment.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def aws_credentials():
    """Set up mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_REGION"] = "us-east-1"

    yield


@pytest.fixture
def users_table(aws_credentials):
    """
    Create a mocked users table.

    Schema: PK=USER#{user_id} (String), SK=PROFILE (String).
    """
    with mock_aws():
        client = boto3.client("dynamodb", region_name="us-east-1")
        client.create_table(
            TableName=USERS_TABLE_NAME,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        resource = boto3.resource("dynamodb", region_name="us-east-1")
        yield resource.Table(USERS_TABLE_NAME)


def put_user(table, user_id: str, roles=None, status="active", **extra) -> dict:
    """Insert a user profile item and return it."""
    item = {
        "PK": f"USER#{user_id}",
        "SK": "PROFILE",
        "user_id": user_id,
        "roles": roles if roles is not None else ["user"],
        "status": status,
        "entity_type": "USER",
        **extra,
    }
    table.put_item(Item=item)
    return item


# =============================================================================
# Log Validation Helpers
# =============================================================================


def assert_warning_logged(caplog, pattern: str):
    """
    Helper to assert a WARNING log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno == logging.WARNING
    ), f"Expected WARNING log matching '{pattern}' not found"


def assert_info_logged(caplog, pattern: str):
    """Helper to assert an INFO log was captured."""
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno == logging.INFO
    ), f"Expected INFO log matching '{pattern}' not found"
