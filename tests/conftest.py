"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

For On-Call Engineers:
    If tests fail with AWS credential errors:
    1. Ensure moto is properly mocking (check the mock_aws context)
    2. Verify AWS env vars are set in fixtures

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - All fixtures use moto mocks (no real AWS calls)
    - Add new shared fixtures here, test-specific fixtures in test files
"""

import os

import pytest
from moto import mock_aws

from tests.helpers import ManualScheduler, create_accounts_table

# Set default test environment variables at module load time
# This allows test files to import modules that read env vars at import time
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

# X-Ray has no daemon or active segment in tests; make the SDK no-op
os.environ.setdefault("AWS_XRAY_SDK_ENABLED", "false")

if "ACCOUNTS_TABLE" not in os.environ:
    os.environ["ACCOUNTS_TABLE"] = "test-portal-accounts"
if "ENVIRONMENT" not in os.environ:
    os.environ["ENVIRONMENT"] = "test"
if "JWT_SECRET" not in os.environ:
    os.environ["JWT_SECRET"] = "test-jwt-secret-0123456789abcdef-0123456789"


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables and dependency singletons after each test.

    Ensures tests don't pollute each other's environment.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)

    from src.portal.shared.dependencies import reset_singletons

    reset_singletons()


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_REGION"] = "us-east-1"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    yield


@pytest.fixture
def accounts_table(aws_credentials):
    """Mocked accounts table (moto)."""
    with mock_aws():
        yield create_accounts_table()


@pytest.fixture
def account_store(accounts_table):
    from src.portal.shared.accounts import AccountStore

    return AccountStore(accounts_table)


@pytest.fixture
def scheduler():
    return ManualScheduler()
