"""
DynamoDB Helper Module
======================

Users-table access with retry configuration for the admin API.

For On-Call Engineers:
    - If you see `ProvisionedThroughputExceededException`, the users table is
      throttling; admin writes retry 3 times with adaptive backoff.
    - `UPDATE_FAILED` responses mean the conditional write matched no record.

For Developers:
    - Keys use composite format: PK=USER#{user_id}, SK=PROFILE.
    - All writes use parameterized expressions; never concatenate user input
      into an UpdateExpression.
    - set_user_fields() is a plain SET write. It checks the record exists but
      carries no version token, so concurrent edits are last-write-wins.
"""

import logging
import os
from decimal import Decimal
from typing import Any

import boto3
from botocore.config import Config

from src.swrpg.shared.logging_utils import get_safe_error_info, sanitize_for_log

logger = logging.getLogger(__name__)

# Retry configuration for transient failures
RETRY_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "adaptive",  # Automatically adjusts to throttling
    },
    connect_timeout=5,
    read_timeout=10,
)


def get_dynamodb_resource(region_name: str | None = None) -> Any:
    """
    Get a DynamoDB resource with retry configuration.

    Args:
        region_name: AWS region (defaults to AWS_DEFAULT_REGION env var)

    Returns:
        boto3 DynamoDB resource
    """
    region = (
        region_name
        or os.environ.get("AWS_DEFAULT_REGION")
        or os.environ.get("AWS_REGION")
    )
    if not region:
        raise ValueError(
            "AWS_DEFAULT_REGION or AWS_REGION environment variable must be set"
        )

    return boto3.resource(
        "dynamodb",
        region_name=region,
        config=RETRY_CONFIG,
    )


def get_table(table_name: str | None = None, region_name: str | None = None) -> Any:
    """
    Get a DynamoDB table resource.

    Args:
        table_name: Table name (defaults to USERS_TABLE env var)
        region_name: AWS region

    Returns:
        boto3 DynamoDB Table resource
    """
    name = table_name or os.environ.get("USERS_TABLE")
    if not name:
        raise ValueError("Table name required: set USERS_TABLE env var or pass table_name")

    resource = get_dynamodb_resource(region_name)
    return resource.Table(name)


def build_user_key(user_id: str) -> dict[str, str]:
    """
    Build the primary key of a user profile item.

    Example:
        >>> build_user_key("abc123")
        {'PK': 'USER#abc123', 'SK': 'PROFILE'}
    """
    return {"PK": f"USER#{user_id}", "SK": "PROFILE"}


def parse_dynamodb_item(item: dict[str, Any]) -> dict[str, Any]:
    """
    Convert DynamoDB item to standard Python dict.

    Decimal becomes int or float, sets become lists, recursively.
    """
    if not item:
        return {}
    return {key: _convert_value(value) for key, value in item.items()}


def _convert_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value % 1 == 0:
            return int(value)
        return float(value)
    elif isinstance(value, set):
        return list(value)
    elif isinstance(value, dict):
        return {k: _convert_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_convert_value(v) for v in value]
    return value


def get_user_item(table: Any, user_id: str) -> dict[str, Any] | None:
    """
    Fetch a user profile item.

    Returns:
        Parsed item, or None when no such user exists
    """
    try:
        response = table.get_item(Key=build_user_key(user_id))
    except Exception as e:
        logger.error(
            "Failed to fetch user",
            extra={
                "user_id_prefix": sanitize_for_log(user_id[:8]),
                **get_safe_error_info(e),
            },
        )
        raise
    item = response.get("Item")
    return parse_dynamodb_item(item) if item else None


def scan_user_items(table: Any) -> list[dict[str, Any]]:
    """
    Read every user profile item, following pagination.

    On-Call Note:
        Full scans are only used by admin listing and statistics endpoints.
    """
    scan_kwargs: dict[str, Any] = {
        "FilterExpression": "SK = :sk",
        "ExpressionAttributeValues": {":sk": "PROFILE"},
    }
    items: list[dict[str, Any]] = []
    while True:
        response = table.scan(**scan_kwargs)
        items.extend(parse_dynamodb_item(item) for item in response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        scan_kwargs["ExclusiveStartKey"] = last_key


def set_user_fields(table: Any, user_id: str, fields: dict[str, Any]) -> bool:
    """
    SET the given attributes on an existing user record.

    Args:
        table: DynamoDB Table resource
        user_id: Target user ID
        fields: Attribute name -> new value

    Returns:
        True if the record was updated, False if no record matched

    On-Call Note:
        A False return surfaces as UPDATE_FAILED; the caller cannot tell a
        missing user from one deleted concurrently.
    """
    assignments = []
    expr_names = {}
    expr_values = {}
    for index, (name, value) in enumerate(fields.items()):
        assignments.append(f"#f{index} = :v{index}")
        expr_names[f"#f{index}"] = name
        expr_values[f":v{index}"] = value

    try:
        table.update_item(
            Key=build_user_key(user_id),
            UpdateExpression="SET " + ", ".join(assignments),
            ConditionExpression="attribute_exists(PK)",
            ExpressionAttributeNames=expr_names,
            ExpressionAttributeValues=expr_values,
        )
        return True
    except table.meta.client.exceptions.ConditionalCheckFailedException:
        logger.debug(
            "User update matched no record",
            extra={"user_id_prefix": sanitize_for_log(user_id[:8])},
        )
        return False
    except Exception as e:
        logger.error(
            "Failed to update user",
            extra={
                "user_id_prefix": sanitize_for_log(user_id[:8]),
                **get_safe_error_info(e),
            },
        )
        raise
