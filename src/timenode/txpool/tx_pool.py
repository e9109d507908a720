"""
Mempool-level view of claim and execute activity.

The pool gives the decision engine early visibility into transactions that
are already in flight for a scheduled request, so the node does not race
them. Entries are short-lived: a periodic sweep drops everything older than
TIME_IN_POOL whether or not it was ever acted upon.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from ..chain.interface import ChainInterface, Subscription
from ..models import Operation
from .processor import CLAIMED_EVENT, EXECUTED_EVENT, PoolEntry, TxPoolProcessor, to_hex

logger = logging.getLogger(__name__)

SCAN_INTERVAL = 5  # seconds between sweeps
TIME_IN_POOL = 5 * 60  # seconds an entry is kept


class BaseTxPool(ABC):
    """Subscription bookkeeping, TTL sweep and queries shared by pool implementations."""

    topics: List[str] = []

    def __init__(self, chain: ChainInterface, clock: Callable[[], float] = time.time):
        self.chain = chain
        self.clock = clock
        self.processor = TxPoolProcessor(chain, clock)

        self.pool: Dict[str, PoolEntry] = {}
        self.subs: Dict[str, Subscription] = {}
        self._listeners: Dict[str, asyncio.Task] = {}
        self._cleaning_task: Optional[asyncio.Task] = None

        self.stats = {
            "entries_added": 0,
            "entries_expired": 0,
            "subscription_errors": 0,
        }

    def running(self) -> bool:
        return all(topic in self.subs for topic in self.topics)

    async def start(self) -> None:
        # A degraded pool still holds live streams and a sweep task
        await self.stop()

        for topic in self.topics:
            await self._watch_topic(topic)
        self._cleaning_task = asyncio.create_task(self._clear_mined())

        logger.debug(f"{self.__class__.__name__} started")

    async def stop(self) -> None:
        for topic in self.topics:
            await self._stop_topic(topic)

        task, self._cleaning_task = self._cleaning_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.debug(f"{self.__class__.__name__} STOPPED")

    def clear_expired(self, now: Optional[float] = None) -> int:
        """Drop entries strictly older than TIME_IN_POOL. Returns how many were removed."""
        now = self.clock() if now is None else now
        expired = [
            tx_hash for tx_hash, entry in self.pool.items()
            if now - entry.timestamp > TIME_IN_POOL
        ]
        for tx_hash in expired:
            del self.pool[tx_hash]

        if expired:
            self.stats["entries_expired"] += len(expired)
            logger.debug(f"Cleaned up {len(expired)} expired pool entries")
        return len(expired)

    def has_pending(
        self,
        address: str,
        operation: Operation,
        min_gas_price: Optional[int] = None
    ) -> bool:
        """Whether a pending ``operation`` on ``address`` is already in the pool."""
        address = address.lower()
        return any(
            entry.to == address
            and entry.operation == operation
            and (min_gas_price is None or entry.gas_price >= min_gas_price)
            for entry in self.pool.values()
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "pool_size": len(self.pool),
            "running": self.running(),
        }

    @abstractmethod
    async def _subscribe(self, topic: str) -> Subscription:
        """Open the stream feeding ``topic``."""

    @abstractmethod
    async def _handle(self, topic: str, item: Any) -> None:
        """Apply one streamed item to the pool."""

    async def _watch_topic(self, topic: str) -> None:
        try:
            subscription = await self._subscribe(topic)
        except Exception as e:
            self.stats["subscription_errors"] += 1
            logger.error(f"Failed to subscribe to {topic}: {e}")
            return

        self.subs[topic] = subscription
        self._listeners[topic] = asyncio.create_task(self._listen(topic, subscription))

    async def _listen(self, topic: str, subscription: Subscription) -> None:
        try:
            async for item in subscription:
                try:
                    await self._handle(topic, item)
                except Exception as e:
                    logger.error(f"Error processing pool item on {topic}: {e}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.stats["subscription_errors"] += 1
            logger.error(f"Subscription {topic} failed: {e}")
        finally:
            # A dead stream stays unsubscribed until the pool is restarted
            if self.subs.get(topic) is subscription:
                del self.subs[topic]

    async def _stop_topic(self, topic: str) -> None:
        subscription = self.subs.pop(topic, None)
        listener = self._listeners.pop(topic, None)
        if listener is not None:
            listener.cancel()

        if subscription is None:
            return
        try:
            await subscription.unsubscribe()
        except Exception as e:
            logger.error(f"Failed to unsubscribe from {topic}: {e}")

    async def _clear_mined(self) -> None:
        while True:
            await asyncio.sleep(SCAN_INTERVAL)
            self.clear_expired()


class TxPool(BaseTxPool):
    """Pool fed by "claimed" and "executed" log subscriptions on the pending block."""

    topics = [CLAIMED_EVENT, EXECUTED_EVENT]

    async def _subscribe(self, topic: str) -> Subscription:
        return await self.chain.subscribe_logs(topic, from_block="pending")

    async def _handle(self, topic: str, item: Any) -> None:
        log_topics = [to_hex(t) for t in item.get("topics", [])]
        if topic not in log_topics:
            return

        operation = Operation.CLAIM if topic == CLAIMED_EVENT else Operation.EXECUTE
        size = len(self.pool)
        await self.processor.process_log(item, operation, self.pool)
        if len(self.pool) > size:
            self.stats["entries_added"] += 1
