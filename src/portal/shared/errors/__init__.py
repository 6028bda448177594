"""Shared error types for the funding portal."""

from src.portal.shared.errors.access_errors import (
    InvalidTierError,
    InvalidUpgradeTargetError,
    UnauthorizedUpgradeError,
    UpgradeError,
)
from src.portal.shared.errors.responses import ErrorCode, error_response
from src.portal.shared.errors.store_errors import (
    AccountNotFoundError,
    StoreError,
    StoreReadError,
    StoreWriteError,
)

__all__ = [
    "AccountNotFoundError",
    "ErrorCode",
    "InvalidTierError",
    "InvalidUpgradeTargetError",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "UnauthorizedUpgradeError",
    "UpgradeError",
    "error_response",
]
