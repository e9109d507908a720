"""
Reward estimation for claiming and executing scheduled transactions.

All amounts are integer wei; division rounds toward zero like the on-chain
payment calculation.
"""
import logging

from ..models import TrackedTransaction
from .gas_oracle import GasPriceOracle

logger = logging.getLogger(__name__)

CLAIMING_GAS_ESTIMATE = 100000  # claim() costs around 75k gas
EXECUTION_GAS_OVERHEAD = 180000  # request bookkeeping around the scheduled call


def estimated_execution_gas(tx: TrackedTransaction) -> int:
    """Gas the executor must supply for the scheduled call plus overhead."""
    # The callee receives at most 63/64 of the forwarded gas
    return tx.call_gas * 65 // 64 + EXECUTION_GAS_OVERHEAD


class ProfitabilityCalculator:
    """Computes expected rewards from a request's bounty, deposit and gas prices."""

    def __init__(self, gas_oracle: GasPriceOracle):
        self.gas_oracle = gas_oracle

    async def claiming_profitability(self, tx: TrackedTransaction, claiming_gas_price: int) -> int:
        """
        Expected reward of claiming ``tx`` at ``claiming_gas_price``.

        Subtracts the claim gas cost and the execution subsidy the claimer
        would owe at today's average network gas price.
        """
        payment_modifier = await tx.claim_payment_modifier()
        claiming_gas_cost = claiming_gas_price * CLAIMING_GAS_ESTIMATE
        gas_stats = await self.gas_oracle.advanced_network_gas_price()
        subsidy = self.execution_subsidy(tx, gas_stats.average)

        reward = tx.bounty * payment_modifier // 100 - claiming_gas_cost - subsidy

        logger.debug(
            f"[{tx.address}] claimingProfitability: payment_modifier={payment_modifier} "
            f"target_gas_price={claiming_gas_price} bounty={tx.bounty} reward={reward}"
        )
        return reward

    async def execution_profitability(self, tx: TrackedTransaction, execution_gas_price: int) -> int:
        """Expected reward of executing ``tx`` at ``execution_gas_price``, deposit included."""
        payment_modifier = await tx.claim_payment_modifier()
        subsidy = self.execution_subsidy(tx, execution_gas_price)
        deposit = tx.required_deposit if tx.is_claimed else 0

        reward = tx.bounty * payment_modifier // 100 - subsidy + deposit

        logger.debug(
            f"[{tx.address}] executionProfitability: subsidy={subsidy} "
            f"for execution_gas_price={execution_gas_price} returns expected_reward={reward}"
        )
        return reward

    @staticmethod
    def execution_subsidy(tx: TrackedTransaction, gas_price: int) -> int:
        if gas_price <= tx.gas_price:
            return 0
        return (gas_price - tx.gas_price) * estimated_execution_gas(tx)
