"""Dashboard page session: the account snapshot a page renders from.

The page holds exactly one Account snapshot for the signed-in identity. It is
loaded (and the record created or merged) on every sign-in, cleared on
sign-out, patched locally after an upgrade, and re-read on refresh. Gates
read the plan value from here; they never write to it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from src.portal.gate.component import SubscriptionGate
from src.portal.gate.countdown import Scheduler
from src.portal.shared.access.features import get_feature, navigation_items
from src.portal.shared.access.policy import normalize_tier
from src.portal.shared.accounts import AccountStore
from src.portal.shared.auth.identity import Identity
from src.portal.shared.auth.session import SessionProvider
from src.portal.shared.cache.account_cache import AccountSnapshotCache
from src.portal.shared.config import DEFAULT_COUNTDOWN_SECONDS
from src.portal.shared.errors.store_errors import StoreError
from src.portal.shared.logging_utils import get_safe_error_info, identity_prefix
from src.portal.shared.models.account import Account

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "We couldn't load your account. Please refresh the page."


class DashboardSession:
    """Owns the account snapshot for one open dashboard page."""

    def __init__(
        self,
        store: AccountStore,
        session: SessionProvider,
        cache: AccountSnapshotCache | None = None,
        *,
        scheduler: Scheduler | None = None,
        countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS,
    ):
        self._store = store
        self._session = session
        self._cache = cache
        self._scheduler = scheduler
        self._countdown_seconds = countdown_seconds

        self._identity: Identity | None = None
        self._account: Account | None = None
        self._gates: list[SubscriptionGate] = []
        self._tasks: set[asyncio.Task] = set()
        self.load_error: str | None = None

        # Fires immediately with the current identity
        self._unsubscribe = session.on_session_change(self._on_session_change)

    @property
    def account(self) -> Account | None:
        return self._account

    @property
    def plan_value(self) -> str | None:
        return self._account.plan_value if self._account else None

    @property
    def tier(self) -> int:
        return normalize_tier(self.plan_value)

    def navigation(self) -> list[dict[str, Any]]:
        return navigation_items(self.plan_value)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _on_session_change(self, identity: Identity | None) -> None:
        self._identity = identity
        self._account = None
        self.load_error = None
        if identity is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._load(identity)
            return
        self._track(loop.create_task(self.load()))

    async def load(self) -> Account | None:
        """Create or merge the record for the signed-in identity and keep it."""
        identity = self._identity
        if identity is None:
            return None
        account = await asyncio.to_thread(self._fetch_ensured, identity)
        return self._apply_loaded(identity, account)

    def _load(self, identity: Identity) -> Account | None:
        return self._apply_loaded(identity, self._fetch_ensured(identity))

    def _fetch_ensured(self, identity: Identity) -> Account | None:
        try:
            account, created = self._store.ensure_account(identity.to_profile())
        except StoreError as e:
            logger.error(
                "Failed to load account for dashboard",
                extra={
                    "identity_prefix": identity_prefix(identity.subject),
                    **get_safe_error_info(e),
                },
            )
            return None
        if created:
            logger.info(
                "New dashboard account",
                extra={"identity_prefix": identity_prefix(identity.subject)},
            )
        return account

    def _apply_loaded(
        self, identity: Identity, account: Account | None
    ) -> Account | None:
        # Signed out or switched user while loading
        if self._identity is None or self._identity.subject != identity.subject:
            return None
        if account is None:
            self.load_error = LOAD_ERROR_MESSAGE
            return None
        self._account = account
        self.load_error = None
        if self._cache is not None:
            self._cache.put(account)
        return account

    async def refresh(self) -> Account | None:
        """Re-read the record; keeps the current snapshot if the read fails."""
        identity = self._identity
        if identity is None:
            return None

        account = self._cache.get(identity.subject) if self._cache else None
        if account is None:
            try:
                account = await asyncio.to_thread(
                    self._store.get_account, identity.subject
                )
            except StoreError as e:
                logger.warning(
                    "Dashboard refresh failed, keeping current snapshot",
                    extra={
                        "identity_prefix": identity_prefix(identity.subject),
                        **get_safe_error_info(e),
                    },
                )
                return self._account

        if account is None:
            return self._account
        return self._apply_loaded(identity, account)

    def request_refresh(self) -> None:
        """Schedule refresh() on the running loop (gate on_refresh hook)."""
        self._track(asyncio.get_running_loop().create_task(self.refresh()))

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for scheduled loads and refreshes to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def apply_tier_change(self, new_tier: int) -> None:
        """Patch the local snapshot after an upgrade; the store is already written."""
        if self._account is None:
            return
        self._account = self._account.model_copy(
            update={"plan_value": str(int(new_tier))}
        )

    def gate(self, feature_key: str) -> SubscriptionGate:
        """Create a gate for a registered feature, wired to this session.

        Raises:
            KeyError: If the feature key is unknown
        """
        feature = get_feature(feature_key)
        gate = SubscriptionGate(
            self._store,
            self._session,
            feature_name=feature.requirement.feature_name,
            required_tier=feature.requirement.required_tier,
            on_tier_change=self.apply_tier_change,
            on_refresh=self.request_refresh,
            cache=self._cache,
            scheduler=self._scheduler,
            countdown_seconds=self._countdown_seconds,
        )
        self._gates.append(gate)
        return gate

    def close(self) -> None:
        """Unmount every gate, stop listening, cancel pending work."""
        for gate in self._gates:
            gate.unmount()
        self._gates.clear()
        self._unsubscribe()
        for task in list(self._tasks):
            task.cancel()
