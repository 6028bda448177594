"""Request authentication and access control for the dashboard API."""

from src.portal.shared.middleware.auth_middleware import (
    JWTClaim,
    JWTConfig,
    extract_identity,
    identity_from_token,
    validate_jwt,
)
from src.portal.shared.middleware.require_tier import require_admin, require_tier

__all__ = [
    "JWTClaim",
    "JWTConfig",
    "extract_identity",
    "identity_from_token",
    "require_admin",
    "require_tier",
    "validate_jwt",
]
