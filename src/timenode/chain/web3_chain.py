"""Web3-backed chain interface over a websocket provider."""
import asyncio
import logging
import time
from typing import Any, AsyncIterator, Dict, Optional, Set

from web3 import AsyncWeb3, WebSocketProvider
from web3.exceptions import TransactionNotFound, Web3Exception

from ..exceptions import ConfirmationTimeout, ReorgError, SubscriptionError, TransientNetworkError
from .interface import (
    BroadcastResult,
    ChainInterface,
    ConnectionEvent,
    ConnectionEventType,
    Subscription,
)

logger = logging.getLogger(__name__)

_CLOSED = object()


class Web3Subscription(Subscription):
    """Subscription fed by the chain's shared websocket reader."""

    def __init__(self, chain: "Web3ChainInterface", subscription_id: str):
        self.chain = chain
        self.subscription_id = subscription_id
        self.queue: asyncio.Queue = asyncio.Queue()
        self.active = True

    async def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        while True:
            item = await self.queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, Exception):
                raise SubscriptionError(str(item), self.chain.provider_url) from item
            yield item

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.chain._subscriptions.pop(self.subscription_id, None)
        self.queue.put_nowait(_CLOSED)
        await self.chain.w3.eth.unsubscribe(self.subscription_id)


class Web3ChainInterface(ChainInterface):
    """ChainInterface implementation using AsyncWeb3 with a WebSocketProvider."""

    def __init__(self, provider_url: str, poll_interval: float = 2.0):
        self.provider_url = provider_url
        self.poll_interval = poll_interval
        self.w3: Optional[AsyncWeb3] = None

        self._subscriptions: Dict[str, Web3Subscription] = {}
        self._reader_task: Optional[asyncio.Task] = None
        self._events: asyncio.Queue = asyncio.Queue()
        self._closing = False

    async def connect(self) -> None:
        """Open the websocket connection to the active provider."""
        self._closing = False
        self.w3 = AsyncWeb3(WebSocketProvider(self.provider_url))
        try:
            await self.w3.provider.connect()
        except Exception as e:
            raise TransientNetworkError(f"Failed to connect: {e}", self.provider_url) from e
        logger.info(f"🔗 Connected to {self.provider_url}")

    async def switch_provider(self, provider_url: str) -> None:
        await self._disconnect()
        self.provider_url = provider_url
        await self.connect()

    def connection_events(self) -> "asyncio.Queue[ConnectionEvent]":
        return self._events

    async def get_balance(self, address: str) -> int:
        return await self.w3.eth.get_balance(AsyncWeb3.to_checksum_address(address))

    async def get_transaction_count(self, address: str) -> int:
        return await self.w3.eth.get_transaction_count(
            AsyncWeb3.to_checksum_address(address), "pending"
        )

    async def get_gas_price(self) -> int:
        return await self.w3.eth.gas_price

    async def get_block_number(self) -> int:
        return await self.w3.eth.block_number

    async def get_chain_id(self) -> int:
        return await self.w3.eth.chain_id

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        try:
            return dict(await self.w3.eth.get_transaction(tx_hash))
        except TransactionNotFound:
            return None

    async def send_raw_transaction(self, raw_transaction: bytes) -> BroadcastResult:
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(raw_transaction)
            return BroadcastResult(tx_hash=tx_hash.to_0x_hex())
        except Exception as e:
            logger.debug(f"Broadcast rejected by {self.provider_url}: {e}")
            return BroadcastResult(tx_hash=None, error=e)

    async def wait_for_confirmations(
        self,
        tx_hash: str,
        depth: int,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        deadline = time.monotonic() + timeout if timeout else None
        seen_in_block: Optional[int] = None

        while True:
            try:
                receipt = await self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                receipt = None

            if receipt is None and seen_in_block is not None:
                raise ReorgError(
                    f"Transaction {tx_hash} dropped from block {seen_in_block}", tx_hash
                )

            if receipt is not None:
                if seen_in_block is not None and receipt["blockNumber"] != seen_in_block:
                    raise ReorgError(
                        f"Transaction {tx_hash} moved from block {seen_in_block} "
                        f"to {receipt['blockNumber']}", tx_hash
                    )
                seen_in_block = receipt["blockNumber"]
                current_block = await self.w3.eth.block_number
                if current_block - seen_in_block + 1 >= depth:
                    return dict(receipt)

            if deadline is not None and time.monotonic() > deadline:
                raise ConfirmationTimeout(
                    f"Transaction {tx_hash} not {depth} blocks deep after {timeout}s", tx_hash
                )

            await asyncio.sleep(self.poll_interval)

    async def subscribe_logs(self, topic: str, from_block: str = "pending") -> Subscription:
        # fromBlock is honoured by geth for pending log subscriptions
        subscription_id = await self.w3.eth.subscribe(
            "logs", {"fromBlock": from_block, "topics": [topic]}
        )
        return self._register(subscription_id)

    async def subscribe_pending_transactions(self) -> Subscription:
        subscription_id = await self.w3.eth.subscribe("newPendingTransactions")
        return self._register(subscription_id)

    async def is_watching_enabled(self) -> bool:
        try:
            log_filter = await self.w3.eth.filter({"fromBlock": "latest"})
            await self.w3.eth.get_filter_logs(log_filter.filter_id)
            await self.w3.eth.uninstall_filter(log_filter.filter_id)
            return True
        except (Web3Exception, ValueError) as e:
            logger.error(f"Log filters not supported by {self.provider_url}: {e}")
            return False

    async def close(self) -> None:
        await self._disconnect()
        logger.info("✅ Chain connection closed")

    def _register(self, subscription_id: str) -> Web3Subscription:
        subscription = Web3Subscription(self, subscription_id)
        self._subscriptions[subscription_id] = subscription

        if self._reader_task is None or self._reader_task.done():
            self._reader_task = asyncio.create_task(self._read_subscriptions())

        return subscription

    async def _read_subscriptions(self) -> None:
        """Route subscription messages to their queues and report transport failures."""
        try:
            async for message in self.w3.socket.process_subscriptions():
                subscription = self._subscriptions.get(message.get("subscription"))
                if subscription is None:
                    continue
                subscription.queue.put_nowait(message["result"])
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"❌ Websocket error on {self.provider_url}: {e}")
            self._fail_subscriptions(e)
            self._events.put_nowait(
                ConnectionEvent(ConnectionEventType.ERROR, str(e), self.provider_url)
            )
            return

        if not self._closing:
            self._fail_subscriptions(SubscriptionError("Connection ended", self.provider_url))
            self._events.put_nowait(
                ConnectionEvent(ConnectionEventType.END, "stream closed", self.provider_url)
            )

    def _fail_subscriptions(self, error: Exception) -> None:
        for subscription in list(self._subscriptions.values()):
            subscription.active = False
            subscription.queue.put_nowait(error)
        self._subscriptions.clear()

    async def _disconnect(self) -> None:
        self._closing = True

        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._reader_task = None

        closed: Set[str] = set(self._subscriptions)
        for subscription in list(self._subscriptions.values()):
            subscription.active = False
            subscription.queue.put_nowait(_CLOSED)
        self._subscriptions.clear()
        if closed:
            logger.debug(f"Dropped {len(closed)} subscriptions on {self.provider_url}")

        if self.w3 is not None:
            try:
                await self.w3.provider.disconnect()
            except Exception as e:
                logger.error(f"Error closing {self.provider_url} connection: {e}")
            self.w3 = None
