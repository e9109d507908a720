"""
WebSocket reconnect state machine.

Listens to the chain's connection events and fails over between the
configured provider URLs with a linear backoff. After a successful
reconnect, further disconnect events are ignored for a short cooldown; after
``max_retries`` consecutive failures scanning is stopped and the machine
stays FAILED until reset.
"""
import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Set

from ..chain.interface import ChainInterface, ConnectionEvent
from ..exceptions import TransientNetworkError

if TYPE_CHECKING:
    from ..node import TimeNode

logger = logging.getLogger(__name__)

RECONNECT_COOLDOWN = 10.0  # seconds
BACKOFF_UNIT = 1.0  # seconds of delay per failed try


class ReconnectMsg(str, Enum):
    ALREADY_RECONNECTED = "Recently reconnected"
    MAX_ATTEMPTS = "Max attempts reached"
    RECONNECTING = "Reconnecting in progress"
    RECONNECTED = "Reconnected"
    FAIL = "Reconnect failed"


class ConnectionState(str, Enum):
    STABLE = "stable"
    RECONNECTING = "reconnecting"
    RECONNECTED = "reconnected"
    FAILED = "failed"


class WsReconnect:
    """Provider failover driven by connection error and end events."""

    def __init__(
        self,
        chain: ChainInterface,
        node: "TimeNode",
        provider_urls: List[str],
        max_retries: int,
        cooldown: float = RECONNECT_COOLDOWN,
        backoff_unit: float = BACKOFF_UNIT
    ):
        self.chain = chain
        self.node = node
        self.provider_urls = provider_urls
        self.max_retries = max_retries
        self.cooldown = cooldown
        self.backoff_unit = backoff_unit

        self.reconnect_tries = 0
        self.reconnecting = False
        self.reconnected = False
        self.failed = False
        self.active_provider_url: Optional[str] = provider_urls[0] if provider_urls else None

        self._listener: Optional[asyncio.Task] = None
        self._attempts: Set[asyncio.Task] = set()
        self._cooldown_handle: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> ConnectionState:
        if self.failed:
            return ConnectionState.FAILED
        if self.reconnecting:
            return ConnectionState.RECONNECTING
        if self.reconnected:
            return ConnectionState.RECONNECTED
        return ConnectionState.STABLE

    def setup(self) -> None:
        """(Re)start listening to the chain's connection events."""
        if self._listener is not None and self._listener is not asyncio.current_task():
            self._listener.cancel()
        self._listener = asyncio.create_task(self._listen(self.chain.connection_events()))

    def on_connection_event(self, event: ConnectionEvent) -> None:
        logger.debug(f"[WS {event.event_type.value.upper()}] {event.reason}")

        if self.failed or self.reconnecting:
            return
        self._schedule(self.reconnect_tries * self.backoff_unit)

    async def handle_disconnect(self) -> ReconnectMsg:
        if self.reconnected:
            return ReconnectMsg.ALREADY_RECONNECTED

        if self.reconnect_tries >= self.max_retries:
            await self.node.stop_scanning()
            self.failed = True
            logger.error(f"❌ Giving up after {self.reconnect_tries} reconnect attempts")
            return ReconnectMsg.MAX_ATTEMPTS

        if self.reconnecting:
            return ReconnectMsg.RECONNECTING

        self.reconnecting = True
        provider_url = await self._ws_reconnect()
        if provider_url:
            self.active_provider_url = provider_url
            await self.node.start_scanning()
            self.reconnect_tries = 0
            self.setup()
            self.reconnected = True
            self.reconnecting = False
            self._start_cooldown()
            logger.info(f"✅ Reconnected to {provider_url}")
            return ReconnectMsg.RECONNECTED

        self.reconnecting = False
        self.reconnect_tries += 1
        self._schedule(self.reconnect_tries * self.backoff_unit)
        return ReconnectMsg.FAIL

    def reset(self) -> None:
        """Leave FAILED (or any state) for a fresh STABLE machine."""
        self.reconnect_tries = 0
        self.reconnecting = False
        self.reconnected = False
        self.failed = False
        if self._cooldown_handle is not None:
            self._cooldown_handle.cancel()
            self._cooldown_handle = None

    async def close(self) -> None:
        tasks = list(self._attempts)
        if self._listener is not None:
            tasks.append(self._listener)
            self._listener = None

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._cooldown_handle is not None:
            self._cooldown_handle.cancel()
            self._cooldown_handle = None

    async def _ws_reconnect(self) -> Optional[str]:
        logger.debug("Attempting WS Reconnect.")
        provider_url = self.provider_urls[self.reconnect_tries % len(self.provider_urls)]
        try:
            await self.chain.switch_provider(provider_url)
            if await self.chain.is_watching_enabled():
                return provider_url
            raise TransientNetworkError("Invalid providerUrl! eth_getFilterLogs not enabled.", provider_url)
        except Exception as e:
            logger.error(f"{e}")
            logger.info(f"Reconnect tries: {self.reconnect_tries}")
            return None

    async def _listen(self, events: "asyncio.Queue[ConnectionEvent]") -> None:
        while True:
            event = await events.get()
            self.on_connection_event(event)

    def _schedule(self, delay: float) -> None:
        task = asyncio.create_task(self._delayed_attempt(delay))
        self._attempts.add(task)
        task.add_done_callback(self._attempts.discard)

    async def _delayed_attempt(self, delay: float) -> None:
        await asyncio.sleep(delay)
        msg = await self.handle_disconnect()
        logger.debug(f"[WS RECONNECT] {msg.value}")

    def _start_cooldown(self) -> None:
        if self._cooldown_handle is not None:
            self._cooldown_handle.cancel()
        loop = asyncio.get_running_loop()
        self._cooldown_handle = loop.call_later(self.cooldown, self._end_cooldown)

    def _end_cooldown(self) -> None:
        self.reconnected = False
        self._cooldown_handle = None
