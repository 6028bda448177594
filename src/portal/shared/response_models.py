"""Minimal response models for the dashboard frontend.

Security Notes:
    - These models define ONLY what the frontend needs
    - Mask PII (emails show j***@example.com)
    - Other accounts' data is only returned by admin endpoints
"""

from datetime import datetime

from pydantic import BaseModel

from src.portal.shared.access.tiers import plan_name
from src.portal.shared.models.account import Account


def mask_email(email: str | None) -> str | None:
    """Mask email for frontend display: john@example.com -> j***@example.com"""
    if not email:
        return None
    try:
        local, domain = email.split("@")
        if len(local) <= 1:
            return f"*@{domain}"
        return f"{local[0]}***@{domain}"
    except ValueError:
        return "***"


class AccountMeResponse(BaseModel):
    """/api/v1/account/me - the caller's own account."""

    display_name: str
    email_masked: str | None = None
    photo_url: str = ""
    name: str = ""
    surname: str = ""
    gender: str = ""
    dob: str = ""
    tier: int
    tier_name: str
    is_admin: bool = False

    @classmethod
    def from_account(cls, account: Account) -> "AccountMeResponse":
        return cls(
            display_name=account.display_name,
            email_masked=mask_email(account.email),
            photo_url=account.photo_url,
            name=account.name,
            surname=account.surname,
            gender=account.gender,
            dob=account.dob,
            tier=account.tier,
            tier_name=plan_name(account.tier),
            is_admin=account.is_admin,
        )


class SessionResponse(BaseModel):
    """Result of the sign-in hook."""

    created: bool
    tier: int
    tier_name: str


class AdminAccountSummary(BaseModel):
    """One row of the admin account list. Emails are shown in full to admins."""

    identity: str
    email: str
    display_name: str
    plan_value: str
    tier: int
    tier_name: str
    is_admin: bool
    created_at: datetime | None = None
    last_login_at: datetime | None = None

    @classmethod
    def from_account(cls, account: Account) -> "AdminAccountSummary":
        return cls(
            identity=account.identity,
            email=account.email,
            display_name=account.display_name,
            plan_value=account.plan_value,
            tier=account.tier,
            tier_name=plan_name(account.tier),
            is_admin=account.is_admin,
            created_at=account.created_at,
            last_login_at=account.last_login_at,
        )
