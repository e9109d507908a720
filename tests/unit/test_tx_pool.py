"""Unit tests for the mempool transaction pools."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import TX_ADDRESS, TX_HASH
from timenode.chain.interface import Subscription
from timenode.exceptions import SubscriptionError
from timenode.models import CLAIM_SELECTOR, EXECUTE_SELECTOR, Operation
from timenode.txpool import (
    CLAIMED_EVENT,
    EXECUTED_EVENT,
    TIME_IN_POOL,
    BaseTxPool,
    DirectTxPool,
    PoolEntry,
    TxPool,
    TxPoolProcessor,
)
from timenode.txpool.processor import operation_for_input, to_hex


class FakeSubscription(Subscription):
    """Subscription fed from a list, optionally failing after the items."""

    def __init__(self, items=None, error=None):
        self.subscription_id = "0x1"
        self.items = list(items or [])
        self.error = error
        self.unsubscribed = False
        self.closed = asyncio.Event()

    async def __aiter__(self):
        for item in self.items:
            yield item
        if self.error is not None:
            raise self.error
        await self.closed.wait()

    async def unsubscribe(self):
        self.unsubscribed = True
        self.closed.set()


def claimed_log(tx_hash: str = TX_HASH, removed: bool = False):
    return {
        "address": TX_ADDRESS,
        "topics": [CLAIMED_EVENT],
        "transactionHash": tx_hash,
        "removed": removed,
    }


class TestClearExpired:
    """Test the TTL sweep."""

    def test_entry_at_ttl_is_kept(self, chain):
        pool = TxPool(chain)
        pool.pool["0x1"] = PoolEntry(TX_ADDRESS, 1, Operation.CLAIM, timestamp=1000)

        removed = pool.clear_expired(now=1000 + TIME_IN_POOL)

        assert removed == 0
        assert "0x1" in pool.pool

    def test_entry_past_ttl_is_removed(self, chain):
        pool = TxPool(chain)
        pool.pool["0x1"] = PoolEntry(TX_ADDRESS, 1, Operation.CLAIM, timestamp=1000)
        pool.pool["0x2"] = PoolEntry(TX_ADDRESS, 1, Operation.EXECUTE, timestamp=1100)

        removed = pool.clear_expired(now=1000 + TIME_IN_POOL + 1)

        assert removed == 1
        assert list(pool.pool) == ["0x2"]
        assert pool.get_stats()["entries_expired"] == 1

    def test_uses_clock_by_default(self, chain):
        pool = TxPool(chain, clock=lambda: 5000.0)
        pool.pool["0x1"] = PoolEntry(TX_ADDRESS, 1, Operation.CLAIM, timestamp=0)

        assert pool.clear_expired() == 1


class TestTxPoolProcessor:
    """Test decoding of pending logs and transactions."""

    @pytest.mark.asyncio
    async def test_process_log_adds_entry(self, chain):
        chain.get_transaction.return_value = {"gasPrice": 30 * 10**9}
        processor = TxPoolProcessor(chain, clock=lambda: 42.0)
        pool = {}

        await processor.process_log(claimed_log(), Operation.CLAIM, pool)

        entry = pool[TX_HASH]
        assert entry.to == TX_ADDRESS.lower()
        assert entry.gas_price == 30 * 10**9
        assert entry.operation == Operation.CLAIM
        assert entry.timestamp == 42.0

    @pytest.mark.asyncio
    async def test_removed_log_drops_entry(self, chain):
        processor = TxPoolProcessor(chain)
        pool = {TX_HASH: PoolEntry(TX_ADDRESS, 1, Operation.CLAIM)}

        await processor.process_log(claimed_log(removed=True), Operation.CLAIM, pool)

        assert pool == {}
        chain.get_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_log_for_unknown_transaction_is_ignored(self, chain):
        chain.get_transaction.return_value = None
        pool = {}

        await TxPoolProcessor(chain).process_log(claimed_log(), Operation.CLAIM, pool)

        assert pool == {}

    @pytest.mark.asyncio
    async def test_process_transaction_matches_selector(self, chain):
        chain.get_transaction.return_value = {
            "to": TX_ADDRESS,
            "gasPrice": 5,
            "input": EXECUTE_SELECTOR,
        }
        pool = {}

        await TxPoolProcessor(chain).process_transaction(bytes.fromhex("cd" * 32), pool)

        assert pool[TX_HASH].operation == Operation.EXECUTE

    @pytest.mark.asyncio
    async def test_process_transaction_ignores_other_calls(self, chain):
        chain.get_transaction.return_value = {"to": TX_ADDRESS, "gasPrice": 5, "input": "0xa9059cbb"}
        pool = {}

        await TxPoolProcessor(chain).process_transaction(TX_HASH, pool)

        assert pool == {}

    def test_operation_for_input(self):
        assert operation_for_input(CLAIM_SELECTOR) == Operation.CLAIM
        assert operation_for_input(bytes.fromhex(EXECUTE_SELECTOR[2:])) == Operation.EXECUTE
        assert operation_for_input(None) is None

    def test_to_hex(self):
        assert to_hex(b"\xab\xcd") == "0xabcd"
        assert to_hex("ABCD") == "0xabcd"


class TestTxPool:
    """Test subscription lifecycle and queries."""

    def test_has_pending(self, chain):
        pool = TxPool(chain)
        pool.pool["0x1"] = PoolEntry(TX_ADDRESS.lower(), 10, Operation.CLAIM)

        assert pool.has_pending(TX_ADDRESS.upper().replace("0X", "0x"), Operation.CLAIM)
        assert not pool.has_pending(TX_ADDRESS, Operation.EXECUTE)
        assert pool.has_pending(TX_ADDRESS, Operation.CLAIM, min_gas_price=10)
        assert not pool.has_pending(TX_ADDRESS, Operation.CLAIM, min_gas_price=11)

    @pytest.mark.asyncio
    async def test_start_subscribes_both_topics(self, chain):
        subscriptions = {}

        async def subscribe(topic, from_block="pending"):
            subscriptions[topic] = FakeSubscription()
            return subscriptions[topic]

        chain.subscribe_logs.side_effect = subscribe
        pool = TxPool(chain)

        await pool.start()

        assert pool.running()
        assert set(subscriptions) == {CLAIMED_EVENT, EXECUTED_EVENT}
        for call in chain.subscribe_logs.call_args_list:
            assert call.kwargs["from_block"] == "pending"

        await pool.stop()

        assert not pool.running()
        assert all(sub.unsubscribed for sub in subscriptions.values())

    @pytest.mark.asyncio
    async def test_start_restarts_running_pool(self, chain):
        chain.subscribe_logs.side_effect = lambda topic, from_block="pending": FakeSubscription()
        pool = TxPool(chain)

        await pool.start()
        first = dict(pool.subs)
        await pool.start()

        assert all(sub.unsubscribed for sub in first.values())
        assert pool.running()
        assert chain.subscribe_logs.await_count == 4
        await pool.stop()

    @pytest.mark.asyncio
    async def test_restart_of_degraded_pool_releases_old_streams(self, chain):
        claimed = FakeSubscription()
        chain.subscribe_logs.side_effect = [
            claimed,
            SubscriptionError("not supported"),
            FakeSubscription(),
            FakeSubscription(),
        ]
        pool = TxPool(chain)

        await pool.start()
        first_sweep = pool._cleaning_task
        assert not pool.running()

        await pool.start()

        assert claimed.unsubscribed
        assert first_sweep.done()
        assert pool.running()

        second_sweep = pool._cleaning_task
        await pool.stop()

        assert second_sweep.done()
        assert pool._cleaning_task is None
        assert pool.subs == {}

    def test_base_pool_is_abstract(self, chain):
        with pytest.raises(TypeError):
            BaseTxPool(chain)

    @pytest.mark.asyncio
    async def test_removed_log_is_not_counted_as_added(self, chain):
        pool = TxPool(chain)
        pool.pool[TX_HASH] = PoolEntry(TX_ADDRESS, 1, Operation.CLAIM)

        await pool._handle(CLAIMED_EVENT, claimed_log(removed=True))
        chain.get_transaction.return_value = None
        await pool._handle(CLAIMED_EVENT, claimed_log())

        assert pool.pool == {}
        assert pool.get_stats()["entries_added"] == 0

    @pytest.mark.asyncio
    async def test_logs_are_added_to_pool(self, chain):
        chain.get_transaction.return_value = {"gasPrice": 7}
        claimed = FakeSubscription(items=[claimed_log()])
        executed = FakeSubscription()
        chain.subscribe_logs.side_effect = [claimed, executed]
        pool = TxPool(chain)

        await pool.start()
        await asyncio.sleep(0.01)

        assert pool.has_pending(TX_ADDRESS, Operation.CLAIM)
        await pool.stop()

    @pytest.mark.asyncio
    async def test_failed_subscription_leaves_pool_degraded(self, chain):
        chain.subscribe_logs.side_effect = [
            FakeSubscription(error=SubscriptionError("connection lost")),
            FakeSubscription(),
        ]
        pool = TxPool(chain)

        await pool.start()
        await asyncio.sleep(0.01)

        assert not pool.running()
        assert CLAIMED_EVENT not in pool.subs
        assert EXECUTED_EVENT in pool.subs
        assert pool.get_stats()["subscription_errors"] == 1
        await pool.stop()

    @pytest.mark.asyncio
    async def test_subscribe_error_is_logged(self, chain):
        chain.subscribe_logs.side_effect = SubscriptionError("not supported")
        pool = TxPool(chain)

        await pool.start()

        assert not pool.running()
        assert pool.get_stats()["subscription_errors"] == 2
        await pool.stop()

    @pytest.mark.asyncio
    async def test_unsubscribe_errors_do_not_block_stop(self, chain):
        failing = FakeSubscription()
        failing.unsubscribe = AsyncMock(side_effect=SubscriptionError("gone"))
        working = FakeSubscription()
        chain.subscribe_logs.side_effect = [failing, working]
        pool = TxPool(chain)

        await pool.start()
        await pool.stop()

        assert working.unsubscribed
        assert pool.subs == {}


class TestDirectTxPool:
    """Test the pending-transaction fed pool."""

    @pytest.mark.asyncio
    async def test_pending_transactions_are_added(self, chain):
        chain.get_transaction.return_value = {"to": TX_ADDRESS, "gasPrice": 9, "input": CLAIM_SELECTOR}
        chain.subscribe_pending_transactions.return_value = FakeSubscription(items=[TX_HASH])
        pool = DirectTxPool(chain)

        await pool.start()
        await asyncio.sleep(0.01)

        assert pool.running()
        assert pool.has_pending(TX_ADDRESS, Operation.CLAIM)
        assert pool.get_stats()["entries_added"] == 1
        await pool.stop()
        chain.subscribe_logs.assert_not_called()

    def test_running_requires_subscription(self, chain):
        pool = DirectTxPool(chain)
        assert not pool.running()
        pool.subs["newPendingTransactions"] = MagicMock()
        assert pool.running()
