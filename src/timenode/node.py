"""
TimeNode orchestrator.

Wires the wallet, transaction pool, economic strategy, scanner and reconnect
machine together and exposes the start/stop controls for scanning and
claiming.
"""
import logging
from typing import Any, Dict, Optional

from .cache.memory_cache import MemoryCache
from .chain.interface import ChainInterface
from .chain.web3_chain import Web3ChainInterface
from .config.settings import TimeNodeSettings
from .economics.gas_oracle import ChainGasPriceOracle, GasPriceOracle, GasStationOracle
from .economics.manager import EconomicStrategyManager
from .reconnect.ws_reconnect import WsReconnect
from .scanner.actions import Actions
from .scanner.cache_scanner import CacheScanner
from .scanner.interface import TransactionRequestSource
from .scanner.router import TxRouter
from .stats import InMemoryStatsStore, StatsStore
from .txpool.direct_tx_pool import DirectTxPool
from .txpool.tx_pool import BaseTxPool, TxPool
from .wallet.wallet import Wallet

logger = logging.getLogger(__name__)


class TimeNode:
    """A running TimeNode: scanning loop, claiming switch and connection failover."""

    def __init__(
        self,
        settings: TimeNodeSettings,
        chain: ChainInterface,
        wallet: Wallet,
        request_source: TransactionRequestSource,
        gas_oracle: Optional[GasPriceOracle] = None,
        txpool: Optional[BaseTxPool] = None,
        cache: Optional[MemoryCache] = None,
        stats: Optional[StatsStore] = None
    ):
        self.settings = settings
        self.chain = chain
        self.wallet = wallet
        self.gas_oracle = gas_oracle or ChainGasPriceOracle(chain)
        self.txpool = txpool
        self.cache = cache or MemoryCache()
        self.stats = stats or InMemoryStatsStore()

        self.manager = EconomicStrategyManager(settings.economic_strategy, self.gas_oracle)
        self.actions = Actions(chain, wallet, self.manager, self.stats, txpool)
        self.router = TxRouter(self.actions, self.cache, wallet, claiming=settings.claiming)
        self.scanner = CacheScanner(
            self.cache,
            self.router,
            request_source,
            chain,
            interval=settings.scan_interval_seconds,
            scan_spread=settings.scan_spread,
        )
        self.reconnect = WsReconnect(chain, self, settings.provider_urls, settings.max_retries)

    @classmethod
    async def from_settings(
        cls,
        settings: TimeNodeSettings,
        request_source: TransactionRequestSource,
        chain: Optional[ChainInterface] = None
    ) -> "TimeNode":
        """
        Build a node from settings, connecting to the first provider when no chain is given.

        Raises:
            ConfigurationError: keystores cannot be unlocked without a password
            WalletLoadError: a private key or keystore is invalid
        """
        if chain is None:
            chain = Web3ChainInterface(settings.active_provider_url)
            await chain.connect()

        chain_id = await chain.get_chain_id()
        wallet = Wallet(
            chain,
            chain_id=chain_id,
            confirmation_timeout=settings.confirmation_timeout_seconds,
        )
        if settings.wallet_stores:
            if settings.wallet_stores_as_private_keys:
                wallet.load_private_keys(settings.wallet_stores)
            else:
                password = settings.password.get_secret_value() if settings.password else None
                wallet.decrypt(settings.wallet_stores, password)

        if settings.gas_station_url:
            gas_oracle: GasPriceOracle = GasStationOracle(settings.gas_station_url, chain)
        else:
            gas_oracle = ChainGasPriceOracle(chain)

        txpool = DirectTxPool(chain) if settings.direct_tx_pool else TxPool(chain)

        logger.info(
            f"TimeNode configured: chain {chain_id}, {len(wallet.get_accounts())} accounts, "
            f"{txpool.__class__.__name__}"
        )
        return cls(settings, chain, wallet, request_source, gas_oracle=gas_oracle, txpool=txpool)

    @property
    def scanning(self) -> bool:
        return self.scanner.scanning

    @property
    def claiming(self) -> bool:
        return self.router.claiming

    async def start(self) -> None:
        """Arm connection failover and honour the autostart and claiming settings."""
        self.reconnect.setup()

        if self.settings.autostart:
            await self.start_scanning()
        if self.settings.claiming:
            self.start_claiming()

        logger.info("🚀 TimeNode started")

    async def start_scanning(self) -> bool:
        if self.txpool is not None:
            await self.txpool.start()
        await self.scanner.start()
        return True

    async def stop_scanning(self) -> bool:
        await self.scanner.stop()
        if self.txpool is not None:
            await self.txpool.stop()
        return False

    def start_claiming(self) -> bool:
        self.router.claiming = True
        logger.info("Claiming enabled")
        return True

    def stop_claiming(self) -> bool:
        self.router.claiming = False
        logger.info("Claiming disabled")
        return False

    async def shutdown(self) -> None:
        logger.info("🛑 Shutting down TimeNode...")
        await self.stop_scanning()
        await self.reconnect.close()

        if isinstance(self.gas_oracle, GasStationOracle):
            await self.gas_oracle.close()
        await self.chain.close()
        logger.info("✅ TimeNode shutdown complete")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "scanning": self.scanning,
            "claiming": self.claiming,
            "accounts": self.wallet.get_addresses(),
            "connection": self.reconnect.state.value,
            "provider_url": self.reconnect.active_provider_url,
            "scanner": dict(self.scanner.stats),
            "txpool": self.txpool.get_stats() if self.txpool is not None else None,
        }
