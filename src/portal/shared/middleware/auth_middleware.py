"""Bearer-token authentication for the dashboard API.

Requests carry ``Authorization: Bearer <jwt>`` issued by the identity
provider. A request without a valid token is treated as signed out: it is
never an error at this layer, endpoints decide what signed-out means.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import jwt
from aws_xray_sdk.core import xray_recorder

from src.portal.shared.auth.identity import Identity
from src.portal.shared.config import DEFAULT_JWT_ISSUER, PortalConfig
from src.portal.shared.logging_utils import identity_prefix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JWTClaim:
    """Validated claims from a bearer token.

    Attributes:
        subject: Identity ('sub' claim)
        expiration: Token expiration timestamp
        issued_at: Token issued timestamp
        issuer: Token issuer (optional)
        claims: Full decoded payload (email, name, picture)
    """

    subject: str
    expiration: datetime
    issued_at: datetime
    issuer: str | None = None
    claims: dict[str, Any] | None = None


@dataclass(frozen=True)
class JWTConfig:
    """Configuration for JWT validation."""

    secret: str
    algorithm: str = "HS256"
    issuer: str | None = DEFAULT_JWT_ISSUER
    leeway_seconds: int = 60

    @classmethod
    def from_portal_config(cls, config: PortalConfig) -> JWTConfig | None:
        """None when no secret is configured (everyone is signed out)."""
        if not config.jwt_secret:
            return None
        return cls(
            secret=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            issuer=config.jwt_issuer,
            leeway_seconds=config.jwt_leeway_seconds,
        )


def validate_jwt(token: str, config: JWTConfig | None) -> JWTClaim | None:
    """Validate a JWT and extract claims.

    Returns:
        JWTClaim if valid, None if invalid, expired or unconfigured
    """
    if config is None:
        logger.debug("JWT validation not configured")
        return None

    try:
        payload = jwt.decode(
            token,
            config.secret,
            algorithms=[config.algorithm],
            issuer=config.issuer,
            leeway=config.leeway_seconds,
            options={
                "require": ["sub", "exp", "iat"],
            },
        )

        return JWTClaim(
            subject=str(payload["sub"]),
            expiration=datetime.fromtimestamp(payload["exp"], tz=UTC),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            issuer=payload.get("iss"),
            claims=payload,
        )

    except jwt.ExpiredSignatureError:
        logger.debug("JWT token has expired")
        return None
    except jwt.InvalidIssuerError:
        logger.debug("JWT token has invalid issuer")
        return None
    except jwt.InvalidSignatureError:
        logger.warning("JWT token has invalid signature")
        return None
    except jwt.DecodeError:
        logger.debug("JWT token is malformed")
        return None
    except jwt.MissingRequiredClaimError as e:
        logger.debug(f"JWT token missing required claim: {e.claim}")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT token rejected: {type(e).__name__}")
        return None


def identity_from_token(token: str, config: JWTConfig | None) -> Identity | None:
    """Identity for a bearer token, or None if the token is not valid."""
    claim = validate_jwt(token, config)
    if claim is None:
        return None
    return Identity.from_claims(claim.claims or {"sub": claim.subject})


@xray_recorder.capture("extract_identity")
def extract_identity(
    headers: dict[str, Any] | None, config: JWTConfig | None
) -> Identity | None:
    """Extract the signed-in identity from request headers.

    Args:
        headers: Request headers (any key case)
        config: JWT configuration, None when auth is not configured

    Returns:
        Identity if a valid bearer token is present, None otherwise
    """
    normalized = {k.lower(): v for k, v in (headers or {}).items()}

    auth_header = normalized.get("authorization", "")
    if not auth_header.startswith("Bearer "):
        logger.debug("No bearer token in request headers")
        return None

    identity = identity_from_token(auth_header[7:].strip(), config)
    if identity is not None:
        logger.debug(
            "Extracted identity from bearer token",
            extra={"identity_prefix": identity_prefix(identity.subject)},
        )
    return identity
