"""Tests for the SubscriptionGate state machine.

The store is a MagicMock and the countdown runs on a manual scheduler, so
every transition is deterministic.
"""

import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from src.portal.gate import GateState, SubscriptionGate
from src.portal.shared.accounts import AccountStore
from src.portal.shared.auth import Identity, SessionProvider
from src.portal.shared.cache import AccountSnapshotCache
from src.portal.shared.errors import StoreWriteError
from src.portal.shared.models import Account
from tests.helpers import assert_error_logged, assert_warning_logged

SUBJECT = "user-1234567890"


@pytest.fixture
def store():
    return MagicMock(spec=AccountStore)


@pytest.fixture
def session():
    provider = SessionProvider()
    provider.sign_in(Identity(subject=SUBJECT))
    return provider


@pytest.fixture
def callbacks():
    return {"tier_changes": [], "refreshes": []}


@pytest.fixture
def gate(store, session, scheduler, callbacks):
    return SubscriptionGate(
        store,
        session,
        feature_name="Business Workshops",
        required_tier=1,
        on_tier_change=callbacks["tier_changes"].append,
        on_refresh=lambda: callbacks["refreshes"].append(True),
        scheduler=scheduler,
    )


class TestRender:
    def test_free_account_blocked_with_offers(self, gate):
        """Plan "none" on a Standard feature shows both paid offers."""
        view = gate.render("none", content="workshops")

        assert view.state is GateState.BLOCKED
        assert [o.tier for o in view.offers] == [1, 2]
        assert [o.price for o in view.offers] == ["R99", "R149"]
        assert view.offers[1].highlighted is True
        assert view.content is None
        assert view.required_tier_name == "Standard"

    def test_sufficient_tier_granted(self, gate):
        view = gate.render("1", content="workshops")

        assert view.state is GateState.GRANTED
        assert view.shows_content
        assert view.content == "workshops"
        assert view.offers == []

    def test_signed_out_blocked_without_offers(self, store, scheduler):
        gate = SubscriptionGate(
            store,
            SessionProvider(),
            feature_name="Business Workshops",
            required_tier=1,
            scheduler=scheduler,
        )

        view = gate.render("2", content="workshops")

        assert view.state is GateState.BLOCKED
        assert view.is_signed_in is False
        assert view.offers == []

    def test_standard_account_offered_premium_only(self, store, session, scheduler):
        gate = SubscriptionGate(
            store,
            session,
            feature_name="Mergers and Acquisitions",
            required_tier=2,
            scheduler=scheduler,
        )
        assert [o.tier for o in gate.render("1").offers] == [2]


class TestSuccessfulUpgrade:
    @pytest.mark.asyncio
    async def test_confirms_and_counts_down(self, gate, store, scheduler, callbacks):
        ok = await gate.request_upgrade(2)

        assert ok is True
        store.update_account_field.assert_called_once_with(SUBJECT, "plan", "2")
        assert callbacks["tier_changes"] == [2]

        view = gate.render("none")
        assert view.state is GateState.CONFIRMED
        assert view.confirmed_tier_name == "Premium"
        assert "Secure Document Management" in view.confirmed_features
        assert view.countdown_remaining == 5

        remaining = []
        for _ in range(5):
            scheduler.advance(1)
            remaining.append(gate.countdown.remaining)
        assert remaining == [4, 3, 2, 1, 0]
        assert callbacks["refreshes"] == [True]

        # The page has refreshed its snapshot with the new tier
        assert gate.render("2", content="workshops").state is GateState.GRANTED

    @pytest.mark.asyncio
    async def test_granted_overrides_confirmed(self, gate):
        await gate.request_upgrade(1)
        assert gate.render("1").state is GateState.GRANTED

    @pytest.mark.asyncio
    async def test_tier_change_reported_once_confirmed(self, store, session, scheduler):
        states_seen = []
        gate = None

        def on_tier_change(tier):
            states_seen.append(gate.state)

        gate = SubscriptionGate(
            store,
            session,
            feature_name="Business Workshops",
            required_tier=1,
            on_tier_change=on_tier_change,
            scheduler=scheduler,
        )
        await gate.request_upgrade(2)

        assert states_seen == [GateState.CONFIRMED]
        assert gate.state is GateState.CONFIRMED
        assert gate.countdown.active

    @pytest.mark.asyncio
    async def test_failing_tier_change_callback_still_confirms(
        self, store, session, scheduler, caplog
    ):
        def on_tier_change(tier):
            raise RuntimeError("page snapshot broke")

        refreshes = []
        gate = SubscriptionGate(
            store,
            session,
            feature_name="Business Workshops",
            required_tier=1,
            on_tier_change=on_tier_change,
            on_refresh=lambda: refreshes.append(True),
            scheduler=scheduler,
        )

        ok = await gate.request_upgrade(2)

        assert ok is True
        assert gate.is_upgrading is False
        assert gate.render("none").state is GateState.CONFIRMED
        assert_error_logged(caplog, "Tier change callback failed after upgrade")

        scheduler.advance(5)
        assert refreshes == [True]
        assert gate.state is GateState.BLOCKED

    @pytest.mark.asyncio
    async def test_invalidates_cached_snapshot(self, store, session, scheduler):
        cache = AccountSnapshotCache(ttl_seconds=60)
        cache.put(Account(identity=SUBJECT))
        gate = SubscriptionGate(
            store,
            session,
            feature_name="Business Workshops",
            required_tier=1,
            cache=cache,
            scheduler=scheduler,
        )

        await gate.request_upgrade(1)

        assert SUBJECT not in cache

    @pytest.mark.asyncio
    async def test_dismiss_ends_confirmation_early(self, gate, scheduler, callbacks):
        await gate.request_upgrade(2)
        scheduler.advance(2)

        gate.dismiss()

        assert gate.state is GateState.BLOCKED
        assert callbacks["refreshes"] == [True]
        assert scheduler.pending == []

    def test_dismiss_outside_confirmation_ignored(self, gate, callbacks):
        gate.dismiss()
        assert callbacks["refreshes"] == []


class TestFailedUpgrade:
    @pytest.mark.asyncio
    async def test_store_failure_surfaces_error(self, gate, store, callbacks, caplog):
        store.update_account_field.side_effect = StoreWriteError("update:plan", SUBJECT)

        ok = await gate.request_upgrade(2)

        assert ok is False
        view = gate.render("none")
        assert view.state is GateState.BLOCKED
        assert view.is_upgrading is False
        assert view.error
        assert [o.tier for o in view.offers] == [1, 2]
        assert callbacks["tier_changes"] == []
        assert_warning_logged(caplog, "Subscription upgrade failed")

    @pytest.mark.asyncio
    async def test_unexpected_failure_also_contained(self, gate, store):
        store.update_account_field.side_effect = ConnectionError("network down")
        assert await gate.request_upgrade(2) is False
        assert gate.error is not None

    @pytest.mark.asyncio
    async def test_retry_after_failure_clears_error(self, gate, store):
        store.update_account_field.side_effect = [StoreWriteError("update:plan"), None]

        await gate.request_upgrade(2)
        ok = await gate.request_upgrade(2)

        assert ok is True
        assert gate.error is None
        assert gate.state is GateState.CONFIRMED

    @pytest.mark.asyncio
    async def test_signed_out_never_writes(self, store, scheduler):
        gate = SubscriptionGate(
            store,
            SessionProvider(),
            feature_name="Business Workshops",
            required_tier=1,
            scheduler=scheduler,
        )

        ok = await gate.request_upgrade(1)

        assert ok is False
        store.update_account_field.assert_not_called()
        assert "sign in" in gate.error


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_second_request_ignored_while_upgrading(self, gate, store):
        release = threading.Event()
        store.update_account_field.side_effect = lambda *a: release.wait(5)

        first = asyncio.create_task(gate.request_upgrade(2))
        await asyncio.sleep(0.01)
        assert gate.is_upgrading is True
        assert gate.render("none").is_upgrading is True

        second = await gate.request_upgrade(1)
        release.set()

        assert second is False
        assert await first is True
        assert store.update_account_field.call_count == 1


class TestUnmount:
    @pytest.mark.asyncio
    async def test_unmount_mid_countdown(self, gate, scheduler, callbacks):
        await gate.request_upgrade(2)
        scheduler.advance(2)
        assert gate.countdown.remaining == 3

        gate.unmount()
        scheduler.advance(10)

        assert scheduler.pending == []
        assert callbacks["refreshes"] == []
        assert gate.countdown.remaining == 3

    @pytest.mark.asyncio
    async def test_unmount_during_write_applies_nothing(self, gate, store, callbacks):
        release = threading.Event()
        store.update_account_field.side_effect = lambda *a: release.wait(5)

        pending = asyncio.create_task(gate.request_upgrade(2))
        await asyncio.sleep(0.01)
        gate.unmount()
        release.set()
        await pending

        assert callbacks["tier_changes"] == []
        assert gate.state is GateState.UPGRADING
        assert gate.countdown.active is False

    @pytest.mark.asyncio
    async def test_unmounted_gate_ignores_requests(self, gate, store):
        gate.unmount()
        gate.unmount()

        assert await gate.request_upgrade(2) is False
        store.update_account_field.assert_not_called()
