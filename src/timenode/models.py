"""
Shared data models for the TimeNode execution engine.

This module defines the operation kinds, scheduling enums and the abstract
TrackedTransaction interface consumed by the scanner, router and economic
strategy engine.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional


NULL_ADDRESS = "0x0000000000000000000000000000000000000000"

# Function selectors of the scheduled transaction contract
CLAIM_SELECTOR = "0x4e71d92d"  # claim()
EXECUTE_SELECTOR = "0x61461954"  # execute()


class Operation(IntEnum):
    """Kind of operation sent against a scheduled transaction."""
    CLAIM = 0
    EXECUTE = 1
    CANCEL = 2


class TemporalUnit(IntEnum):
    """Unit in which the windows of a scheduled transaction are expressed."""
    BLOCK = 1
    TIMESTAMP = 2


class TxStatus(IntEnum):
    """Lifecycle of a scheduled transaction, ordered from earliest to latest."""
    BEFORE_CLAIM_WINDOW = 0
    CLAIM_WINDOW = 1
    FREEZE_PERIOD = 2
    EXECUTION_WINDOW = 3
    EXECUTED = 4
    MISSED = 5

    @property
    def is_final(self) -> bool:
        return self in (TxStatus.EXECUTED, TxStatus.MISSED)


class CacheStates(str, Enum):
    """Result of a cache scan pass."""
    REFRESHED = "refreshed"
    EMPTY = "empty"


@dataclass
class TransactionOptions:
    """Parameters of a transaction the wallet is asked to send."""
    to: str
    value: int
    gas: int
    gas_price: int
    data: str
    operation: Operation


class TrackedTransaction(ABC):
    """
    Interface of a scheduled transaction read from chain.

    Implementations wrap the on-chain request contract; the engine only reads
    these accessors and never mutates the underlying request.
    """

    address: str
    bounty: int
    gas_price: int
    call_gas: int
    required_deposit: int
    claimed_by: str
    is_claimed: bool
    was_called: bool
    is_cancelled: bool
    temporal_unit: TemporalUnit
    claim_window_start: int
    window_start: int
    window_size: int
    freeze_period: int
    reserved_window_size: int

    @property
    def claim_window_end(self) -> int:
        return self.window_start - self.freeze_period

    @property
    def freeze_period_end(self) -> int:
        return self.claim_window_end + self.freeze_period

    @property
    def reserved_window_end(self) -> int:
        return self.window_start + self.reserved_window_size

    @property
    def execution_window_end(self) -> int:
        return self.window_start + self.window_size

    @property
    def is_block_based(self) -> bool:
        return self.temporal_unit == TemporalUnit.BLOCK

    def is_claimed_by(self, address: Optional[str]) -> bool:
        if not address or not self.claimed_by:
            return False
        return self.claimed_by.lower() == address.lower()

    @abstractmethod
    async def claim_payment_modifier(self) -> int:
        """Time-decayed percentage of the bounty paid to the claimer."""

    @abstractmethod
    async def now(self) -> int:
        """Current block number or timestamp, matching ``temporal_unit``."""

    @abstractmethod
    async def refresh_data(self) -> None:
        """Reload the request data from chain."""
