"""Identity and session handling for the funding portal."""

from src.portal.shared.auth.identity import Identity
from src.portal.shared.auth.session import SessionListener, SessionProvider

__all__ = [
    "Identity",
    "SessionListener",
    "SessionProvider",
]
