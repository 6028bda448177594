"""
Portal Configuration
====================

Parses and validates configuration from environment variables.

For On-Call Engineers:
    Environment variables:
    - ACCOUNTS_TABLE: DynamoDB table holding account records (required)
    - ENVIRONMENT: dev | test | preprod | prod
    - JWT_SECRET: HMAC secret for bearer tokens (unset = everyone signed out)
    - JWT_ALGORITHM / JWT_ISSUER / JWT_LEEWAY_SECONDS: token validation
    - UPGRADE_COUNTDOWN_SECONDS: confirmation countdown after an upgrade
    - ACCOUNT_CACHE_TTL_SECONDS: account snapshot cache lifetime
    - CORS_ORIGINS: comma-separated allowed origins

    If the dashboard fails at cold start with ConfigurationError, check the
    Lambda environment variables in the AWS Console.

For Developers:
    - Use get_config() to load all configuration
    - Configuration is validated on load
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_JWT_ISSUER = "funding-portal"
DEFAULT_COUNTDOWN_SECONDS = 5
DEFAULT_ACCOUNT_CACHE_TTL_SECONDS = 300
LOCAL_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class PortalConfig:
    """
    Configuration for the dashboard API and the subscription gate.

    All fields are validated on instantiation.
    """

    accounts_table: str
    environment: str = DEFAULT_ENVIRONMENT
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = DEFAULT_JWT_ISSUER
    jwt_leeway_seconds: int = 60
    upgrade_countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS
    account_cache_ttl_seconds: int = DEFAULT_ACCOUNT_CACHE_TTL_SECONDS
    cors_origins: list[str] = field(default_factory=list)

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if not self.accounts_table:
            raise ConfigurationError("ACCOUNTS_TABLE is required")

        if self.upgrade_countdown_seconds < 1:
            raise ConfigurationError(
                "UPGRADE_COUNTDOWN_SECONDS must be at least 1, "
                f"got {self.upgrade_countdown_seconds}"
            )

        if self.account_cache_ttl_seconds < 0:
            raise ConfigurationError(
                "ACCOUNT_CACHE_TTL_SECONDS cannot be negative, "
                f"got {self.account_cache_ttl_seconds}"
            )

        if self.jwt_leeway_seconds < 0:
            raise ConfigurationError("JWT_LEEWAY_SECONDS cannot be negative")

    @property
    def is_local(self) -> bool:
        return self.environment in ("dev", "test")


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def parse_cors_origins(value: str, environment: str) -> list[str]:
    """
    Parse CORS_ORIGINS, falling back to localhost for dev/test only.

    Example:
        >>> parse_cors_origins("https://a.example, https://b.example", "prod")
        ['https://a.example', 'https://b.example']
    """
    origins = [origin.strip() for origin in value.split(",") if origin.strip()]
    if origins:
        return origins
    if environment in ("dev", "test", "preprod"):
        return list(LOCAL_CORS_ORIGINS)
    return []


def get_config() -> PortalConfig:
    """
    Load and validate configuration from environment variables.

    Raises:
        ConfigurationError: If required vars missing or invalid
    """
    environment = os.environ.get("ENVIRONMENT", DEFAULT_ENVIRONMENT)

    config = PortalConfig(
        accounts_table=os.environ.get("ACCOUNTS_TABLE", ""),
        environment=environment,
        jwt_secret=os.environ.get("JWT_SECRET") or None,
        jwt_algorithm=os.environ.get("JWT_ALGORITHM", "HS256"),
        jwt_issuer=os.environ.get("JWT_ISSUER", DEFAULT_JWT_ISSUER),
        jwt_leeway_seconds=_int_from_env("JWT_LEEWAY_SECONDS", 60),
        upgrade_countdown_seconds=_int_from_env(
            "UPGRADE_COUNTDOWN_SECONDS", DEFAULT_COUNTDOWN_SECONDS
        ),
        account_cache_ttl_seconds=_int_from_env(
            "ACCOUNT_CACHE_TTL_SECONDS", DEFAULT_ACCOUNT_CACHE_TTL_SECONDS
        ),
        cors_origins=parse_cors_origins(
            os.environ.get("CORS_ORIGINS", ""), environment
        ),
    )

    if not config.jwt_secret:
        logger.warning(
            "JWT_SECRET not configured, all requests will be treated as signed out",
            extra={"environment": config.environment},
        )

    logger.info(
        "Configuration loaded",
        extra={
            "environment": config.environment,
            "accounts_table": config.accounts_table,
            "countdown_seconds": config.upgrade_countdown_seconds,
        },
    )

    return config
