"""Shared fixtures and test doubles for TimeNode unit tests."""
import asyncio
from unittest.mock import MagicMock

import pytest

from timenode.chain.interface import BroadcastResult, ChainInterface
from timenode.models import NULL_ADDRESS, TemporalUnit, TrackedTransaction

TX_ADDRESS = "0x" + "ab" * 20
TX_HASH = "0x" + "cd" * 32
GWEI = 10**9


class FakeTrackedTransaction(TrackedTransaction):
    """In-memory TrackedTransaction with a settable clock."""

    def __init__(
        self,
        address: str = TX_ADDRESS,
        bounty: int = 10**16,
        gas_price: int = 20 * GWEI,
        call_gas: int = 200000,
        required_deposit: int = 10**15,
        claimed_by: str = NULL_ADDRESS,
        is_claimed: bool = False,
        was_called: bool = False,
        is_cancelled: bool = False,
        temporal_unit: TemporalUnit = TemporalUnit.BLOCK,
        claim_window_start: int = 100,
        window_start: int = 300,
        window_size: int = 100,
        freeze_period: int = 10,
        reserved_window_size: int = 20,
        payment_modifier: int = 100,
        current: int = 150
    ):
        self.address = address
        self.bounty = bounty
        self.gas_price = gas_price
        self.call_gas = call_gas
        self.required_deposit = required_deposit
        self.claimed_by = claimed_by
        self.is_claimed = is_claimed
        self.was_called = was_called
        self.is_cancelled = is_cancelled
        self.temporal_unit = temporal_unit
        self.claim_window_start = claim_window_start
        self.window_start = window_start
        self.window_size = window_size
        self.freeze_period = freeze_period
        self.reserved_window_size = reserved_window_size
        self.payment_modifier = payment_modifier
        self.current = current
        self.refresh_count = 0

    async def claim_payment_modifier(self) -> int:
        return self.payment_modifier

    async def now(self) -> int:
        return self.current

    async def refresh_data(self) -> None:
        self.refresh_count += 1


def make_chain() -> MagicMock:
    """ChainInterface double with healthy defaults; async methods are AsyncMocks."""
    chain = MagicMock(spec=ChainInterface)
    chain.get_balance.return_value = 10**18
    chain.get_transaction_count.return_value = 0
    chain.get_gas_price.return_value = 20 * GWEI
    chain.get_block_number.return_value = 1000
    chain.get_chain_id.return_value = 1
    chain.get_transaction.return_value = None
    chain.send_raw_transaction.return_value = BroadcastResult(tx_hash=TX_HASH)
    chain.wait_for_confirmations.return_value = {
        "status": 1,
        "gasUsed": 21000,
        "effectiveGasPrice": 20 * GWEI,
    }
    chain.is_watching_enabled.return_value = True
    chain.connection_events.return_value = asyncio.Queue()
    return chain


@pytest.fixture
def chain():
    return make_chain()


@pytest.fixture
def tracked_tx():
    return FakeTrackedTransaction()
