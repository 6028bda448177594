"""
DynamoDB Helper Module
======================

Provides DynamoDB table access with retry configuration for the accounts table.

For On-Call Engineers:
    - If you see `ProvisionedThroughputExceededException`, the table is
      throttling; it uses on-demand billing so this should be transient.
    - Retry logic handles transient failures automatically (3 attempts, adaptive).

For Developers:
    - Keys use composite format: PK=ACCOUNT#<identity>, SK=PROFILE.
    - All updates use parameterized expressions (ExpressionAttributeNames/Values).
    - Never construct expressions with string concatenation of user input.
"""

import logging
import os
from typing import Any

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

# Retry configuration for transient failures
RETRY_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "adaptive",
    },
    connect_timeout=5,
    read_timeout=10,
)


def _resolve_region(region_name: str | None) -> str:
    region = (
        region_name
        or os.environ.get("AWS_DEFAULT_REGION")
        or os.environ.get("AWS_REGION")
    )
    if not region:
        raise ValueError(
            "AWS_DEFAULT_REGION or AWS_REGION environment variable must be set"
        )
    return region


def get_dynamodb_resource(region_name: str | None = None) -> Any:
    """
    Get a DynamoDB resource with retry configuration.

    Args:
        region_name: AWS region (defaults to AWS_DEFAULT_REGION / AWS_REGION)

    Returns:
        boto3 DynamoDB resource
    """
    return boto3.resource(
        "dynamodb",
        region_name=_resolve_region(region_name),
        config=RETRY_CONFIG,
    )


def get_table(table_name: str | None = None, region_name: str | None = None) -> Any:
    """
    Get a DynamoDB table resource.

    Args:
        table_name: Table name (defaults to ACCOUNTS_TABLE env var)
        region_name: AWS region

    Returns:
        boto3 DynamoDB Table resource
    """
    name = table_name or os.environ.get("ACCOUNTS_TABLE")
    if not name:
        raise ValueError(
            "Table name required: set ACCOUNTS_TABLE env var or pass table_name"
        )

    return get_dynamodb_resource(region_name).Table(name)


def build_update_expression(
    changes: dict[str, Any],
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """
    Build a parameterized SET expression for attribute updates.

    Args:
        changes: Stored attribute name -> new value

    Returns:
        (UpdateExpression, ExpressionAttributeNames, ExpressionAttributeValues)

    Example:
        >>> build_update_expression({"plan": "2"})
        ('SET #f0 = :v0', {'#f0': 'plan'}, {':v0': '2'})
    """
    if not changes:
        raise ValueError("At least one attribute is required for an update")

    clauses = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    for index, (attribute, value) in enumerate(changes.items()):
        names[f"#f{index}"] = attribute
        values[f":v{index}"] = value
        clauses.append(f"#f{index} = :v{index}")

    return "SET " + ", ".join(clauses), names, values
