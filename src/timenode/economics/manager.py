"""
Economic strategy manager.

Combines the configured EconomicStrategy floors with gas price selection and
profitability estimates into a CLAIM / EXECUTE / SKIP decision. The manager
keeps no state between calls: identical inputs and oracle snapshots always
produce identical decisions.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config.settings import EconomicStrategy
from ..models import TrackedTransaction, TxStatus
from .gas_oracle import GasPriceOracle
from .normalized_times import NormalizedTimes
from .profitability import ProfitabilityCalculator

logger = logging.getLogger(__name__)


class EconomicAction(str, Enum):
    CLAIM = "claim"
    EXECUTE = "execute"
    SKIP = "skip"


@dataclass(frozen=True)
class EconomicDecision:
    """Outcome of an economic evaluation."""
    action: EconomicAction
    gas_price: Optional[int] = None
    reason: str = ""

    @property
    def should_act(self) -> bool:
        return self.action != EconomicAction.SKIP

    @classmethod
    def skip(cls, reason: str) -> "EconomicDecision":
        return cls(EconomicAction.SKIP, None, reason)


class EconomicStrategyManager:
    """Applies the EconomicStrategy thresholds to tracked transactions."""

    def __init__(
        self,
        strategy: EconomicStrategy,
        gas_oracle: GasPriceOracle,
        calculator: Optional[ProfitabilityCalculator] = None
    ):
        self.strategy = strategy
        self.gas_oracle = gas_oracle
        self.calculator = calculator or ProfitabilityCalculator(gas_oracle)

    def max_subsidized_gas_price(self, tx: TrackedTransaction) -> int:
        """Highest gas price the node accepts to pay for ``tx``, subsidy included."""
        return tx.gas_price * (100 + self.strategy.max_gas_subsidy) // 100

    async def get_claiming_gas_price(self, tx: TrackedTransaction, now: Optional[int] = None) -> Optional[int]:
        """
        Gas price to claim ``tx`` with.

        With smart estimation the price comes from the slowest tier that still
        lands before the claim window closes, or None when none does.
        """
        if not self.strategy.using_smart_gas_estimation:
            return await self.gas_oracle.network_gas_price()

        now = await tx.now() if now is None else now
        gas_stats = await self.gas_oracle.advanced_network_gas_price()
        return NormalizedTimes(gas_stats, tx.temporal_unit).pick_gas_price(tx.claim_window_end - now)

    async def get_execution_gas_price(self, tx: TrackedTransaction, now: Optional[int] = None) -> Optional[int]:
        """Gas price to execute ``tx`` with; never below the price the request pays back."""
        if self.strategy.using_smart_gas_estimation:
            now = await tx.now() if now is None else now
            gas_stats = await self.gas_oracle.advanced_network_gas_price()
            gas_price = NormalizedTimes(gas_stats, tx.temporal_unit).pick_gas_price(
                tx.execution_window_end - now
            )
            if gas_price is None:
                return None
        else:
            gas_price = await self.gas_oracle.network_gas_price()

        return max(gas_price, tx.gas_price)

    async def should_claim(
        self,
        tx: TrackedTransaction,
        balance: int,
        now: Optional[int] = None
    ) -> EconomicDecision:
        strategy = self.strategy
        now = await tx.now() if now is None else now

        if tx.required_deposit > strategy.max_deposit:
            return self._skip(tx, f"deposit {tx.required_deposit} above max_deposit {strategy.max_deposit}")

        if balance < strategy.min_balance:
            return self._skip(tx, f"balance {balance} below min_balance {strategy.min_balance}")

        min_claim_window = strategy.min_claim_window_block if tx.is_block_based else strategy.min_claim_window
        claim_window_left = tx.claim_window_end - now
        if claim_window_left < min_claim_window:
            return self._skip(tx, f"claim window left {claim_window_left} below {min_claim_window}")

        min_execution_window = (
            strategy.min_execution_window_block if tx.is_block_based else strategy.min_execution_window
        )
        if tx.window_size < min_execution_window:
            return self._skip(tx, f"execution window {tx.window_size} below {min_execution_window}")

        gas_stats = await self.gas_oracle.advanced_network_gas_price()
        max_gas_price = self.max_subsidized_gas_price(tx)
        if gas_stats.average > max_gas_price:
            return self._skip(tx, f"network gas price {gas_stats.average} above subsidy limit {max_gas_price}")

        gas_price = await self.get_claiming_gas_price(tx, now)
        if gas_price is None:
            return self._skip(tx, "no gas price tier fits the claim window")

        reward = await self.calculator.claiming_profitability(tx, gas_price)
        if reward < strategy.min_profitability:
            return self._skip(tx, f"reward {reward} below min_profitability {strategy.min_profitability}")

        logger.debug(f"[{tx.address}] Claiming at gas price {gas_price}, expected reward {reward}")
        return EconomicDecision(EconomicAction.CLAIM, gas_price, f"expected reward {reward}")

    async def should_execute(self, tx: TrackedTransaction, now: Optional[int] = None) -> EconomicDecision:
        gas_price = await self.get_execution_gas_price(tx, now)
        if gas_price is None:
            return self._skip(tx, "no gas price tier fits the execution window")

        max_gas_price = self.max_subsidized_gas_price(tx)
        if gas_price > max_gas_price:
            return self._skip(tx, f"execution gas price {gas_price} above subsidy limit {max_gas_price}")

        reward = await self.calculator.execution_profitability(tx, gas_price)
        if reward < self.strategy.min_profitability:
            return self._skip(
                tx, f"reward {reward} below min_profitability {self.strategy.min_profitability}"
            )

        logger.debug(f"[{tx.address}] Executing at gas price {gas_price}, expected reward {reward}")
        return EconomicDecision(EconomicAction.EXECUTE, gas_price, f"expected reward {reward}")

    async def evaluate(
        self,
        tx: TrackedTransaction,
        status: TxStatus,
        balance: int,
        now: Optional[int] = None
    ) -> EconomicDecision:
        """Decision for ``tx`` given its current window status."""
        if status == TxStatus.CLAIM_WINDOW:
            return await self.should_claim(tx, balance, now)
        if status == TxStatus.EXECUTION_WINDOW:
            return await self.should_execute(tx, now)
        return EconomicDecision.skip(f"nothing to do in status {status.name}")

    @staticmethod
    def _skip(tx: TrackedTransaction, reason: str) -> EconomicDecision:
        logger.debug(f"[{tx.address}] Skipping: {reason}")
        return EconomicDecision.skip(reason)
