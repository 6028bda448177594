"""Session state and change notification.

SessionProvider is the auth capability the dashboard composes against.
It is created once by the composition root (see dependencies.py) and passed
to every consumer; nothing reaches for a module-level session.

Subscribers are notified once per transition: sign-in, sign-out, or a switch
to a different subject. A token refresh for the same subject is transparent.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from src.portal.shared.auth.identity import Identity
from src.portal.shared.logging_utils import get_safe_error_info, identity_prefix

if TYPE_CHECKING:
    from src.portal.shared.middleware.auth_middleware import JWTConfig

logger = logging.getLogger(__name__)

SessionListener = Callable[[Identity | None], None]


class SessionProvider:
    """Holds the current identity and notifies listeners of transitions."""

    def __init__(self, jwt_config: JWTConfig | None = None):
        self._jwt_config = jwt_config
        self._identity: Identity | None = None
        self._listeners: list[SessionListener] = []

    @property
    def current_identity(self) -> Identity | None:
        return self._identity

    @property
    def is_signed_in(self) -> bool:
        return self._identity is not None

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """Subscribe to session transitions.

        The callback is invoked immediately with the current identity (None
        when signed out), then once per transition.

        Returns:
            Unsubscribe function (safe to call more than once)
        """
        self._listeners.append(callback)
        self._call(callback, self._identity)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sign_in(self, identity: Identity) -> None:
        if self._identity is not None and self._identity.subject == identity.subject:
            # Same subject: refreshed claims, not a transition
            self._identity = identity
            return
        self._identity = identity
        logger.info(
            "Session signed in",
            extra={"identity_prefix": identity_prefix(identity.subject)},
        )
        self._notify()

    def sign_in_with_token(self, token: str) -> Identity | None:
        """Sign in from a bearer token.

        Returns:
            The identity, or None if the token is invalid (session unchanged)
        """
        # auth_middleware imports this package
        from src.portal.shared.middleware.auth_middleware import identity_from_token

        identity = identity_from_token(token, self._jwt_config)
        if identity is None:
            logger.warning("Sign-in rejected: invalid token")
            return None
        self.sign_in(identity)
        return identity

    def refresh(self, identity: Identity) -> None:
        """Apply refreshed credentials. Transparent for the same subject."""
        self.sign_in(identity)

    def sign_out(self) -> None:
        if self._identity is None:
            return
        logger.info(
            "Session signed out",
            extra={"identity_prefix": identity_prefix(self._identity.subject)},
        )
        self._identity = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            self._call(listener, self._identity)

    @staticmethod
    def _call(listener: SessionListener, identity: Identity | None) -> None:
        try:
            listener(identity)
        except Exception as e:
            # One broken subscriber must not block the others
            logger.error("Session listener failed", extra=get_safe_error_info(e))
