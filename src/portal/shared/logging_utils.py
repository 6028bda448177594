"""
Secure logging helpers for the funding portal.

Account records carry personal data (names, emails, dates of birth) and
identities double as bearer-token subjects, so nothing user-controlled is
logged verbatim. These helpers keep log lines single-line, bounded and free
of PII:

- sanitize_for_log(): strip CRLF/control characters, cap length (CWE-117)
- identity_prefix(): log identities as an 8-character prefix only
- email_domain(): log the domain of an email, never the local part
- get_safe_error_info(): log the exception type, never its message

For On-Call Engineers:
    Search CloudWatch by identity prefix:
    filter identity_prefix = "abcd1234"
"""

import re
from typing import Any

# Maximum length for logged user input to prevent log flooding
MAX_LOG_INPUT_LENGTH = 200

IDENTITY_PREFIX_LENGTH = 8


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_INPUT_LENGTH) -> str:
    """
    Sanitize a value for safe logging by removing CRLF and limiting length.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length of output (default: 200)

    Returns:
        Sanitized string safe for logging

    Example:
        >>> sanitize_for_log("plan\\n[FAKE] admin granted")
        'plan [FAKE] admin granted'
    """
    text = str(value)

    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")
    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", " ", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def identity_prefix(identity: str | None) -> str:
    """Return a loggable prefix of an identity ("-" when signed out)."""
    if not identity:
        return "-"
    return sanitize_for_log(identity[:IDENTITY_PREFIX_LENGTH])


def email_domain(email: str | None) -> str | None:
    """Return the sanitized domain part of an email, or None."""
    if not email or "@" not in email:
        return None
    return sanitize_for_log(email.rsplit("@", 1)[-1])


def get_safe_error_info(exception: Exception) -> dict[str, str]:
    """
    Extract safe information from an exception for logging.

    Returns only the exception type. boto3 error messages can echo key
    values and request payloads, so the message is never logged.

    Example:
        >>> try:
        ...     raise ValueError("plan=2 for user 1234")
        ... except Exception as e:
        ...     get_safe_error_info(e)
        {'error_type': 'ValueError'}
    """
    return {"error_type": type(exception).__name__}
