"""
Cache scanner.

Every scan interval the scanner discovers newly scheduled requests in the
recent block range, stores their addresses in the cache and routes every
cached address. At most one route per address runs at a time: a pass that
finds its address still in flight is skipped and retried next cycle.
"""
import asyncio
import logging
from typing import Optional, Set

from ..cache.memory_cache import MemoryCache
from ..chain.interface import ChainInterface
from ..models import CacheStates, TrackedTransaction
from .interface import TransactionRequestSource
from .router import TxRouter

logger = logging.getLogger(__name__)


class CacheScanner:
    """Periodically routes every cached tracked transaction."""

    def __init__(
        self,
        cache: MemoryCache,
        router: TxRouter,
        request_source: TransactionRequestSource,
        chain: ChainInterface,
        interval: float = 4.0,
        scan_spread: int = 50
    ):
        self.cache = cache
        self.router = router
        self.request_source = request_source
        self.chain = chain
        self.interval = interval
        self.scan_spread = scan_spread

        self.routes: Set[str] = set()
        self._route_tasks: Set[asyncio.Task] = set()
        self._scan_task: Optional[asyncio.Task] = None

        self.stats = {
            "scans": 0,
            "routes_started": 0,
            "routes_skipped": 0,
            "route_errors": 0,
            "discovered": 0,
        }

    @property
    def scanning(self) -> bool:
        return self._scan_task is not None and not self._scan_task.done()

    async def start(self) -> None:
        if self.scanning:
            logger.warning("Scanner already running")
            return

        self._scan_task = asyncio.create_task(self._scan_loop())
        logger.info(f"🔍 Scanning started (interval: {self.interval}s, spread: {self.scan_spread} blocks)")

    async def stop(self) -> None:
        task, self._scan_task = self._scan_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        # Routes already in flight run to completion
        logger.info(f"Scanning stopped ({len(self._route_tasks)} routes still in flight)")

    async def scan_cycle(self) -> CacheStates:
        """One scheduled pass: discovery followed by a cache scan."""
        try:
            await self.discover()
        except Exception as e:
            logger.error(f"Discovery failed: {e}")
        return self.scan_cache()

    async def discover(self) -> int:
        """Cache addresses scheduled in the last ``scan_spread`` blocks. Returns how many were new."""
        latest = await self.chain.get_block_number()
        from_block = max(0, latest - self.scan_spread)
        addresses = await self.request_source.addresses_between(from_block, latest)

        new = 0
        for address in addresses:
            if not self.cache.has(address):
                self.cache.set(address, True)
                new += 1

        if new:
            self.stats["discovered"] += new
            logger.info(f"Discovered {new} new requests in blocks {from_block}-{latest}")
        return new

    def scan_cache(self) -> CacheStates:
        """
        Start a route for every cached address with a truthy value.

        Returns:
            CacheStates.EMPTY when there is nothing cached, otherwise
            CacheStates.REFRESHED once routes were started
        """
        if self.cache.is_empty():
            return CacheStates.EMPTY

        self.stats["scans"] += 1
        for address in self.cache.stored():
            if not self.cache.get(address):
                continue
            tx = self.request_source.request(address)
            self._spawn(self.route(tx))

        return CacheStates.REFRESHED

    async def route(self, tx: TrackedTransaction) -> None:
        address = tx.address.lower()
        if address in self.routes:
            self.stats["routes_skipped"] += 1
            logger.debug(f"[{address}] Routing in progress. Skipping...")
            return

        self.routes.add(address)
        self.stats["routes_started"] += 1
        try:
            await tx.refresh_data()
            await self.router.route(tx)
        finally:
            self.routes.discard(address)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._route_tasks.add(task)
        task.add_done_callback(self._on_route_done)
        return task

    def _on_route_done(self, task: asyncio.Task) -> None:
        self._route_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.stats["route_errors"] += 1
            logger.error(f"Routing failed: {error}")

    async def _scan_loop(self) -> None:
        while True:
            try:
                await self.scan_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in scan cycle: {e}")
            await asyncio.sleep(self.interval)
