"""Persisted models for the funding portal."""

from src.portal.shared.models.account import (
    Account,
    AdminAccountUpdate,
    AuthProfile,
    ProfileUpdate,
    account_key,
)

__all__ = [
    "Account",
    "AdminAccountUpdate",
    "AuthProfile",
    "ProfileUpdate",
    "account_key",
]
