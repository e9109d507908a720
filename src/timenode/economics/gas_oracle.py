"""
Gas price oracles for the economic strategy engine.

An oracle returns a GasPriceEstimation snapshot: four price tiers with the
expected wait for each tier and the average block time.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import aiohttp

from ..chain.interface import ChainInterface

logger = logging.getLogger(__name__)

# Gas station prices are quoted in tenths of a gwei
GAS_STATION_UNIT_WEI = 10**8


@dataclass(frozen=True)
class GasPriceEstimation:
    """Snapshot of network gas price tiers."""
    safe_low: int
    average: int
    fast: int
    fastest: int
    safe_low_wait: Decimal = Decimal(0)
    avg_wait: Decimal = Decimal(0)
    fast_wait: Decimal = Decimal(0)
    fastest_wait: Decimal = Decimal(0)
    block_time: Decimal = Decimal(1)

    @classmethod
    def flat(cls, gas_price: int) -> "GasPriceEstimation":
        """All tiers at the same price, with no wait information."""
        return cls(safe_low=gas_price, average=gas_price, fast=gas_price, fastest=gas_price)


class GasPriceOracle(ABC):
    """Source of network gas prices."""

    @abstractmethod
    async def network_gas_price(self) -> int:
        ...

    @abstractmethod
    async def advanced_network_gas_price(self) -> GasPriceEstimation:
        ...


class ChainGasPriceOracle(GasPriceOracle):
    """Oracle backed only by the node's ``eth_gasPrice``."""

    def __init__(self, chain: ChainInterface):
        self.chain = chain

    async def network_gas_price(self) -> int:
        return await self.chain.get_gas_price()

    async def advanced_network_gas_price(self) -> GasPriceEstimation:
        return GasPriceEstimation.flat(await self.network_gas_price())


class GasStationOracle(GasPriceOracle):
    """
    Oracle reading tiers from a gas station JSON API.

    Falls back to the chain's gas price for every tier when the API is
    unreachable or returns an unexpected payload.
    """

    def __init__(self, url: str, chain: ChainInterface, timeout: float = 10.0):
        self.url = url
        self.chain = chain
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={"User-Agent": "timenode/1.0"}
        )

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    async def network_gas_price(self) -> int:
        return await self.chain.get_gas_price()

    async def advanced_network_gas_price(self) -> GasPriceEstimation:
        try:
            payload = await self._fetch()
            return self.parse(payload)
        except (aiohttp.ClientError, asyncio.TimeoutError, KeyError, ValueError) as e:
            logger.error(f"Gas station unavailable, using network gas price: {e}")
            return GasPriceEstimation.flat(await self.network_gas_price())

    @staticmethod
    def parse(payload: Dict[str, Any]) -> GasPriceEstimation:
        def price(key: str) -> int:
            return int(Decimal(str(payload[key])) * GAS_STATION_UNIT_WEI)

        def wait(key: str) -> Decimal:
            return Decimal(str(payload.get(key, 0)))

        return GasPriceEstimation(
            safe_low=price("safeLow"),
            average=price("average"),
            fast=price("fast"),
            fastest=price("fastest"),
            safe_low_wait=wait("safeLowWait"),
            avg_wait=wait("avgWait"),
            fast_wait=wait("fastWait"),
            fastest_wait=wait("fastestWait"),
            block_time=Decimal(str(payload.get("block_time", 1))) or Decimal(1),
        )

    async def _fetch(self) -> Dict[str, Any]:
        if self.session is None:
            await self.initialize()

        async with self.session.get(self.url) as response:
            response.raise_for_status()
            return await response.json()
