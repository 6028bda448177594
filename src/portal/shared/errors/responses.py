"""
Standardized error bodies for the dashboard API.

For On-Call Engineers:
    Error codes and their meanings:
    - VALIDATION_ERROR: request body/field rejected
    - NOT_FOUND: account or feature does not exist
    - UNAUTHORIZED: no valid bearer token (signed out)
    - FORBIDDEN: signed in, but plan tier or admin flag insufficient
    - UPGRADE_NOT_ALLOWED: requested tier is not an upgrade
    - DATABASE_ERROR: DynamoDB read/write failure (retryable by the user)
    - INTERNAL_ERROR: unexpected server error

Security Notes:
    - Never expose internal error details to end users
    - Log metadata only; request_id correlates the two
"""

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in every error body."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    UPGRADE_NOT_ALLOWED = "UPGRADE_NOT_ALLOWED"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(
    status_code: int,
    message: str,
    code: str | ErrorCode,
    request_id: str,
    details: dict[str, Any] | None = None,
    log_error: bool = True,
) -> dict[str, Any]:
    """
    Build a standardized JSON error body.

    Format:
    {
        "error": "Human readable message",
        "code": "MACHINE_READABLE_CODE",
        "request_id": "req-123",
        "details": {}              # only when provided
    }

    Args:
        status_code: HTTP status code (used for log level only)
        message: Human-readable error message
        code: Machine-readable error code
        request_id: Request ID for correlation
        details: Extra client-safe details (upgrade offers, required tier)
        log_error: Whether to log the error (default True)

    Returns:
        Dict suitable for ``JSONResponse(content=...)``
    """
    error_code = code.value if isinstance(code, ErrorCode) else code

    body: dict[str, Any] = {
        "error": message,
        "code": error_code,
        "request_id": request_id,
    }
    if details:
        body["details"] = details

    if log_error:
        log_level = logging.ERROR if status_code >= 500 else logging.WARNING
        logger.log(
            log_level,
            message,
            extra={
                "status_code": status_code,
                "error_code": error_code,
                "request_id": request_id,
            },
        )

    return body
