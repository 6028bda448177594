"""Account model with DynamoDB keys.

The account record is the only persisted state the plan-tier gate reads.
Older records were written by several sign-in flows with different field
sets, so ``Account.from_item`` is the single decode step: every defaulting
rule lives here and nowhere else.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.portal.shared.access.policy import normalize_tier
from src.portal.shared.access.tiers import NO_PLAN

# Stored attribute name -> model field name
STORED_FIELD_NAMES = {
    "email": "email",
    "displayName": "display_name",
    "photoURL": "photo_url",
    "name": "name",
    "surname": "surname",
    "gender": "gender",
    "dob": "dob",
}


def account_key(identity: str) -> dict[str, str]:
    """DynamoDB key for an account record."""
    return {"PK": f"ACCOUNT#{identity}", "SK": "PROFILE"}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _stored_plan(value: Any) -> str:
    """Stored plan attribute as a string; blank/missing becomes "none"."""
    if value is None or isinstance(value, bool):
        return NO_PLAN
    text = str(value).strip()
    return text or NO_PLAN


def _timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


class AuthProfile(BaseModel):
    """What the identity provider knows about a user at sign-in."""

    identity: str = Field(..., min_length=1)
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None


class Account(BaseModel):
    """Per-identity dashboard account."""

    identity: str = Field(..., description="Auth provider subject")
    plan_value: str = Field(NO_PLAN, description='"none" or a numeric tier string')
    is_admin: bool = False

    # Profile
    email: str = ""
    display_name: str = ""
    photo_url: str = ""
    name: str = ""
    surname: str = ""
    gender: str = ""
    dob: str = ""

    created_at: datetime | None = None
    last_login_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def tier(self) -> int:
        return normalize_tier(self.plan_value)

    @property
    def key(self) -> dict[str, str]:
        return account_key(self.identity)

    def to_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format (stored attribute names)."""
        item: dict[str, Any] = {
            **self.key,
            "identity": self.identity,
            "plan": self.plan_value,
            "isAdmin": self.is_admin,
            "email": self.email,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
            "name": self.name,
            "surname": self.surname,
            "gender": self.gender,
            "dob": self.dob,
            "entity_type": "ACCOUNT",
        }
        if self.created_at is not None:
            item["createdAt"] = self.created_at.isoformat()
        if self.last_login_at is not None:
            item["lastLogin"] = self.last_login_at.isoformat()
        if self.updated_at is not None:
            item["updatedAt"] = self.updated_at.isoformat()
        return item

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "Account":
        """Decode a stored record, applying the defaulting rules.

        - missing/blank plan -> "none"; numeric plans are stringified
        - missing isAdmin -> False (only a literal True grants admin)
        - missing text fields -> ""
        """
        identity = item.get("identity")
        if not identity:
            pk = str(item.get("PK", ""))
            identity = pk.split("#", 1)[1] if "#" in pk else pk

        return cls(
            identity=str(identity),
            plan_value=_stored_plan(item.get("plan")),
            is_admin=item.get("isAdmin") is True,
            email=_text(item.get("email")),
            display_name=_text(item.get("displayName")),
            photo_url=_text(item.get("photoURL")),
            name=_text(item.get("name")),
            surname=_text(item.get("surname")),
            gender=_text(item.get("gender")),
            dob=_text(item.get("dob")),
            created_at=_timestamp(item.get("createdAt")),
            last_login_at=_timestamp(item.get("lastLogin")),
            updated_at=_timestamp(item.get("updatedAt")),
        )

    @classmethod
    def new(cls, profile: AuthProfile, now: datetime) -> "Account":
        """Defaults for an identity signing in for the first time."""
        return cls(
            identity=profile.identity,
            plan_value=NO_PLAN,
            is_admin=False,
            email=profile.email or "",
            display_name=profile.display_name or "Anonymous",
            photo_url=profile.photo_url or "",
            created_at=now,
            last_login_at=now,
        )


class ProfileUpdate(BaseModel):
    """Self-service profile edit. Plan and admin flag are not editable here."""

    name: str | None = Field(None, max_length=100)
    surname: str | None = Field(None, max_length=100)
    gender: str | None = Field(None, max_length=50)
    dob: str | None = Field(None, max_length=32)
    display_name: str | None = Field(None, max_length=100)

    def changes(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


class AdminAccountUpdate(BaseModel):
    """Administrative edit of another account."""

    plan_value: str | None = Field(None, max_length=16)
    is_admin: bool | None = None
    profile: ProfileUpdate | None = None
