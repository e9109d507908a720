"""Unit tests for status derivation and routing."""
from unittest.mock import MagicMock

import pytest
from eth_account import Account

from conftest import FakeTrackedTransaction
from timenode.cache.memory_cache import MemoryCache
from timenode.models import TxStatus
from timenode.scanner.actions import Actions
from timenode.scanner.router import TxRouter, derive_status
from timenode.wallet.wallet import Wallet

OTHER_CLAIMER = "0x" + "99" * 20


@pytest.fixture
def wallet(chain):
    wallet = Wallet(chain)
    wallet.add(Account.from_key("0x" + "11" * 32))
    return wallet


@pytest.fixture
def actions():
    return MagicMock(spec=Actions)


@pytest.fixture
def cache(tracked_tx):
    cache = MemoryCache()
    cache.set(tracked_tx.address, True)
    return cache


@pytest.fixture
def router(actions, cache, wallet):
    return TxRouter(actions, cache, wallet, claiming=True)


class TestDeriveStatus:
    """Test window based status derivation.

    Windows of the default transaction: claim 100-289, freeze 290-299,
    execution 300-400, reserved until 319.
    """

    @pytest.mark.parametrize("now, expected", [
        (99, TxStatus.BEFORE_CLAIM_WINDOW),
        (100, TxStatus.CLAIM_WINDOW),
        (289, TxStatus.CLAIM_WINDOW),
        (290, TxStatus.FREEZE_PERIOD),
        (300, TxStatus.EXECUTION_WINDOW),
        (400, TxStatus.EXECUTION_WINDOW),
        (401, TxStatus.MISSED),
    ])
    def test_windows(self, now, expected):
        assert derive_status(FakeTrackedTransaction(), now) == expected

    def test_called_transaction_is_executed(self):
        assert derive_status(FakeTrackedTransaction(was_called=True), 150) == TxStatus.EXECUTED

    def test_cancelled_transaction_is_missed(self):
        assert derive_status(FakeTrackedTransaction(is_cancelled=True), 150) == TxStatus.MISSED


class TestTxRouter:
    """Test routing decisions."""

    @pytest.mark.asyncio
    async def test_claim_window_claims(self, router, actions, tracked_tx):
        status = await router.route(tracked_tx)

        assert status == TxStatus.CLAIM_WINDOW
        actions.claim.assert_awaited_once_with(tracked_tx)
        actions.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_claim_when_claiming_disabled(self, router, actions, tracked_tx):
        router.claiming = False

        await router.route(tracked_tx)

        actions.claim.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_claim_when_already_claimed(self, router, actions):
        tx = FakeTrackedTransaction(is_claimed=True, claimed_by=OTHER_CLAIMER)

        await router.route(tx)

        actions.claim.assert_not_called()

    @pytest.mark.asyncio
    async def test_execution_window_executes(self, router, actions):
        tx = FakeTrackedTransaction(current=350)

        status = await router.route(tx)

        assert status == TxStatus.EXECUTION_WINDOW
        actions.execute.assert_awaited_once_with(tx)

    @pytest.mark.asyncio
    async def test_reserved_window_of_other_claimer(self, router, actions):
        tx = FakeTrackedTransaction(current=310, is_claimed=True, claimed_by=OTHER_CLAIMER)

        await router.route(tx)

        actions.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_after_reserved_window_anyone_executes(self, router, actions):
        tx = FakeTrackedTransaction(current=320, is_claimed=True, claimed_by=OTHER_CLAIMER)

        await router.route(tx)

        actions.execute.assert_awaited_once_with(tx)

    @pytest.mark.asyncio
    async def test_own_claim_executes_in_reserved_window(self, router, actions, wallet):
        tx = FakeTrackedTransaction(current=305, is_claimed=True, claimed_by=wallet.get_addresses()[0])

        await router.route(tx)

        actions.execute.assert_awaited_once_with(tx)

    @pytest.mark.asyncio
    async def test_final_status_drops_from_cache(self, router, cache, tracked_tx):
        tracked_tx.current = 500

        status = await router.route(tracked_tx)

        assert status == TxStatus.MISSED
        assert not cache.has(tracked_tx.address)
        assert tracked_tx.address.lower() not in router.statuses

    @pytest.mark.asyncio
    async def test_status_never_moves_backwards(self, router, tracked_tx):
        tracked_tx.current = 295
        assert await router.get_status(tracked_tx) == TxStatus.FREEZE_PERIOD

        # Block-based clock from a lagging provider
        tracked_tx.current = 150
        assert await router.get_status(tracked_tx) == TxStatus.FREEZE_PERIOD

    @pytest.mark.asyncio
    async def test_freeze_period_does_nothing(self, router, actions, tracked_tx):
        tracked_tx.current = 295

        await router.route(tracked_tx)

        actions.claim.assert_not_called()
        actions.execute.assert_not_called()
