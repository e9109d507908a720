"""Abstract chain interface consumed by the wallet, pools and reconnect logic."""
import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional


class ConnectionEventType(str, Enum):
    """Transport signals emitted by the active provider connection."""
    ERROR = "error"
    END = "end"


@dataclass
class ConnectionEvent:
    """A transport signal delivered on the connection event channel."""
    event_type: ConnectionEventType
    reason: str = ""
    provider_url: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class BroadcastResult:
    """Outcome of handing a signed transaction to the provider."""
    tx_hash: Optional[str]
    error: Optional[Exception] = None


class Subscription(ABC):
    """A live subscription delivering items until it is unsubscribed or fails."""

    subscription_id: str

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        ...

    @abstractmethod
    async def unsubscribe(self) -> None:
        ...


class ChainInterface(ABC):
    """Broadcast and query operations the execution engine needs from a chain."""

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        ...

    @abstractmethod
    async def get_transaction_count(self, address: str) -> int:
        """Next nonce for ``address``, including pending transactions."""

    @abstractmethod
    async def get_gas_price(self) -> int:
        ...

    @abstractmethod
    async def get_block_number(self) -> int:
        ...

    @abstractmethod
    async def get_chain_id(self) -> int:
        ...

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def send_raw_transaction(self, raw_transaction: bytes) -> BroadcastResult:
        """Broadcast a signed transaction; provider errors are returned, not raised."""

    @abstractmethod
    async def wait_for_confirmations(
        self,
        tx_hash: str,
        depth: int,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Wait until ``tx_hash`` is ``depth`` blocks deep and return its receipt.

        Raises:
            ReorgError: the receipt disappeared or moved to another block
            ConfirmationTimeout: the depth was not reached in time
        """

    @abstractmethod
    async def subscribe_logs(self, topic: str, from_block: str = "pending") -> Subscription:
        ...

    @abstractmethod
    async def subscribe_pending_transactions(self) -> Subscription:
        ...

    @abstractmethod
    async def is_watching_enabled(self) -> bool:
        """Whether the active provider supports log filters."""

    @abstractmethod
    async def switch_provider(self, provider_url: str) -> None:
        """Replace the active connection with one to ``provider_url``."""

    @abstractmethod
    def connection_events(self) -> "asyncio.Queue[ConnectionEvent]":
        """Channel of transport error/end signals for the active connection."""

    @abstractmethod
    async def close(self) -> None:
        ...
