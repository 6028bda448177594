"""
SubscriptionGate
================

Wraps a premium feature. Shows the feature when the account's plan grants
it, otherwise shows upgrade offers, performs the upgrade, confirms it with a
short countdown and hands control back to the page for a refresh.

State machine (per gate instance):

    BLOCKED --request_upgrade--> UPGRADING --ok--> CONFIRMED --countdown/dismiss--> BLOCKED
                                    |
                                    +--failure--> BLOCKED (error shown)

GRANTED overrides everything: it is derived on each render from the plan
value the page passes in, so once the page refreshes with the new tier the
gate renders the feature without the gate itself changing state.

For On-Call Engineers:
    Upgrade failures log "Subscription upgrade failed" with the identity
    prefix and error type. The user sees a generic retry message; the
    account is unchanged because the store write is single-field.
    "Tier change callback failed after upgrade" means the write landed but
    the page could not apply it; the gate still confirms and the countdown
    refresh re-reads the account.

For Developers:
    - The gate never mutates the account snapshot it renders from; the page
      owns it and learns about the new tier through on_tier_change.
    - After unmount() nothing touches gate state or fires callbacks, even
      if an upgrade write is still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from src.portal.gate.countdown import Countdown, Scheduler
from src.portal.gate.state import GateState, GateView, PlanOffer
from src.portal.shared.access.policy import (
    GateDecision,
    available_upgrade_tiers,
    evaluate_access,
)
from src.portal.shared.access.tiers import get_plan, plan_name
from src.portal.shared.accounts import PLAN_FIELD, AccountStore
from src.portal.shared.auth.session import SessionProvider
from src.portal.shared.cache.account_cache import AccountSnapshotCache
from src.portal.shared.config import DEFAULT_COUNTDOWN_SECONDS
from src.portal.shared.errors.access_errors import (
    UnauthorizedUpgradeError,
    UpgradeError,
)
from src.portal.shared.logging_utils import get_safe_error_info, identity_prefix

logger = logging.getLogger(__name__)

TierChangeCallback = Callable[[int], None]
RefreshCallback = Callable[[], None]


class SubscriptionGate:
    """Access gate for one feature on one page.

    Args:
        store: Account store used for the plan write
        session: Session capability; the signed-in identity is read from it
            at upgrade time
        feature_name: Human-readable feature name shown in the blocked view
        required_tier: Minimum tier that unlocks the feature
        on_tier_change: Called with the new tier after a successful upgrade
        on_refresh: Called when the confirmation ends (countdown or dismiss)
        cache: Snapshot cache to invalidate after a successful upgrade
        scheduler: Timer source for the countdown (defaults to the running
            asyncio loop)
        countdown_seconds: Length of the confirmation countdown
    """

    def __init__(
        self,
        store: AccountStore,
        session: SessionProvider,
        *,
        feature_name: str,
        required_tier: int,
        on_tier_change: TierChangeCallback | None = None,
        on_refresh: RefreshCallback | None = None,
        cache: AccountSnapshotCache | None = None,
        scheduler: Scheduler | None = None,
        countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS,
    ):
        self._store = store
        self._session = session
        self.feature_name = feature_name
        self.required_tier = required_tier
        self._on_tier_change = on_tier_change
        self._on_refresh = on_refresh
        self._cache = cache
        self._countdown = Countdown(
            seconds=countdown_seconds,
            on_tick=self._on_countdown_tick,
            on_done=self._finish_confirmation,
            scheduler=scheduler,
        )

        self._state = GateState.BLOCKED
        self._is_upgrading = False
        self._error: str | None = None
        self._confirmed_tier: int | None = None
        self._mounted = True

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> GateState:
        """Stored state. GRANTED is never stored, see render()."""
        return self._state

    @property
    def is_upgrading(self) -> bool:
        return self._is_upgrading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def countdown(self) -> Countdown:
        return self._countdown

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def decide(self, current_plan_value: Any) -> GateDecision:
        """Access decision for the plan value the page currently holds.

        Signed out always denies, whatever plan value is passed.
        """
        decision = evaluate_access(current_plan_value, self.required_tier)
        if self._session.current_identity is None:
            return GateDecision(
                has_access=False,
                current_tier=decision.current_tier,
                required_tier=self.required_tier,
            )
        return decision

    def render(self, current_plan_value: Any, content: Any = None) -> GateView:
        """Build the view for the page's latest plan value.

        Args:
            current_plan_value: Stored plan value from the page's snapshot
            content: The protected feature, shown only when access is granted
        """
        decision = self.decide(current_plan_value)
        signed_in = self._session.current_identity is not None

        view = {
            "feature_name": self.feature_name,
            "required_tier": self.required_tier,
            "required_tier_name": plan_name(self.required_tier),
            "current_tier": decision.current_tier,
            "current_tier_name": plan_name(decision.current_tier),
            "is_signed_in": signed_in,
        }

        if decision.has_access:
            return GateView(state=GateState.GRANTED, content=content, **view)

        if self._state is GateState.CONFIRMED and self._confirmed_tier is not None:
            confirmed = get_plan(self._confirmed_tier)
            return GateView(
                state=GateState.CONFIRMED,
                confirmed_tier=self._confirmed_tier,
                confirmed_tier_name=confirmed.name,
                confirmed_features=list(confirmed.features),
                countdown_remaining=self._countdown.remaining,
                **view,
            )

        offers: list[PlanOffer] = []
        if signed_in:
            offers = [
                PlanOffer.from_plan(get_plan(tier))
                for tier in available_upgrade_tiers(decision.current_tier)
            ]

        return GateView(
            state=self._state,
            offers=offers,
            is_upgrading=self._is_upgrading,
            error=self._error,
            **view,
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def request_upgrade(self, target_tier: int) -> bool:
        """Upgrade the signed-in account to target_tier.

        Never raises for store failures: they become an inline error and the
        gate returns to BLOCKED. A second request while one is in flight is
        ignored.

        Returns:
            True if the plan write succeeded
        """
        if not self._mounted:
            logger.debug("Upgrade requested on unmounted gate, ignoring")
            return False

        if self._is_upgrading:
            logger.debug(
                "Upgrade already in progress, ignoring",
                extra={"feature": self.feature_name},
            )
            return False

        identity = self._session.current_identity
        if identity is None:
            error = UnauthorizedUpgradeError()
            logger.warning(
                "Upgrade attempted while signed out",
                extra={"feature": self.feature_name, "target_tier": target_tier},
            )
            self._state = GateState.BLOCKED
            self._error = error.user_message
            return False

        target_tier = int(target_tier)
        self._is_upgrading = True
        self._state = GateState.UPGRADING
        self._error = None

        try:
            await asyncio.to_thread(
                self._store.update_account_field,
                identity.subject,
                PLAN_FIELD,
                str(target_tier),
            )
        except asyncio.CancelledError:
            self._is_upgrading = False
            if self._mounted:
                self._state = GateState.BLOCKED
            raise
        except Exception as e:
            self._is_upgrading = False
            if self._mounted:
                self._state = GateState.BLOCKED
                self._error = UpgradeError.user_message
            logger.warning(
                "Subscription upgrade failed",
                extra={
                    "identity_prefix": identity_prefix(identity.subject),
                    "feature": self.feature_name,
                    "target_tier": target_tier,
                    **get_safe_error_info(e),
                },
            )
            return False

        self._is_upgrading = False
        # The write happened regardless of the page lifecycle
        self._invalidate_cached(identity.subject)

        if not self._mounted:
            logger.debug(
                "Gate unmounted during upgrade, skipping confirmation",
                extra={"identity_prefix": identity_prefix(identity.subject)},
            )
            return True

        logger.info(
            "Subscription upgraded",
            extra={
                "identity_prefix": identity_prefix(identity.subject),
                "feature": self.feature_name,
                "target_tier": target_tier,
            },
        )

        # The plan is written; confirm before handing the tier to the page
        self._state = GateState.CONFIRMED
        self._confirmed_tier = target_tier

        if self._on_tier_change is not None:
            try:
                self._on_tier_change(target_tier)
            except Exception as e:
                logger.error(
                    "Tier change callback failed after upgrade",
                    extra={
                        "identity_prefix": identity_prefix(identity.subject),
                        "feature": self.feature_name,
                        "target_tier": target_tier,
                        **get_safe_error_info(e),
                    },
                )

        if self._mounted and self._state is GateState.CONFIRMED:
            self._countdown.start()
        return True

    def dismiss(self) -> None:
        """Close the confirmation early. Ignored in any other state."""
        if not self._mounted or self._state is not GateState.CONFIRMED:
            return
        self._countdown.cancel()
        self._finish_confirmation()

    def unmount(self) -> None:
        """Release the countdown; the gate is inert afterwards. Idempotent."""
        if not self._mounted:
            return
        self._mounted = False
        self._countdown.cancel()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _invalidate_cached(self, identity: str) -> None:
        if self._cache is not None:
            self._cache.invalidate(identity)

    def _on_countdown_tick(self, remaining: int) -> None:
        logger.debug("Upgrade confirmation countdown", extra={"remaining": remaining})

    def _finish_confirmation(self) -> None:
        if not self._mounted:
            return
        self._state = GateState.BLOCKED
        self._confirmed_tier = None
        if self._on_refresh is not None:
            self._on_refresh()
