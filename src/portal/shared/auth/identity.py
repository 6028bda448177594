"""Signed-in identity as seen by the portal."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.portal.shared.models.account import AuthProfile


@dataclass(frozen=True)
class Identity:
    """A signed-in user.

    Attributes:
        subject: Stable identity key ('sub' claim), also the account key
        email: Email claim, if present
        display_name: 'name' claim, if present
        photo_url: 'picture' claim, if present
    """

    subject: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> Identity:
        return cls(
            subject=str(claims["sub"]),
            email=claims.get("email"),
            display_name=claims.get("name"),
            photo_url=claims.get("picture"),
        )

    def to_profile(self) -> AuthProfile:
        return AuthProfile(
            identity=self.subject,
            email=self.email,
            display_name=self.display_name,
            photo_url=self.photo_url,
        )
