"""
Claim and execute actions.

Each action checks, in order, that nobody else is already sending the same
operation (mempool pool, then the node's own wallet), asks the economic
strategy for a go/no-go and a gas price, and finally hands the transaction
to the wallet. Outcomes of broadcast attempts are recorded in the stats store.
"""
import logging
from typing import Any, Dict, Optional

from ..chain.interface import ChainInterface
from ..economics.manager import EconomicStrategyManager
from ..economics.profitability import CLAIMING_GAS_ESTIMATE, estimated_execution_gas
from ..models import CLAIM_SELECTOR, EXECUTE_SELECTOR, Operation, TrackedTransaction, TransactionOptions
from ..stats import StatsStore
from ..txpool.tx_pool import BaseTxPool
from ..wallet.wallet import TxSendStatus, Wallet, WalletReceipt

logger = logging.getLogger(__name__)

# Statuses for which a transaction actually reached the chain
BROADCAST_STATUSES = (TxSendStatus.OK, TxSendStatus.FAIL, TxSendStatus.MINED_IN_UNCLE)


def transaction_cost(receipt: Optional[Dict[str, Any]]) -> int:
    """Wei spent on gas according to ``receipt``, 0 when unknown."""
    if not receipt:
        return 0
    gas_used = receipt.get("gasUsed", 0)
    gas_price = receipt.get("effectiveGasPrice", receipt.get("gasPrice", 0))
    return int(gas_used) * int(gas_price)


class Actions:
    """Sends claim() and execute() calls for tracked transactions."""

    def __init__(
        self,
        chain: ChainInterface,
        wallet: Wallet,
        manager: EconomicStrategyManager,
        stats: StatsStore,
        txpool: Optional[BaseTxPool] = None
    ):
        self.chain = chain
        self.wallet = wallet
        self.manager = manager
        self.stats = stats
        self.txpool = txpool

    async def claim(self, tx: TrackedTransaction) -> bool:
        """Try to claim ``tx``. Returns True when the claim was mined successfully."""
        if not self.wallet.get_accounts():
            logger.warning("No accounts available to claim")
            return False

        if self._in_pool(tx, Operation.CLAIM):
            logger.debug(f"[{tx.address}] Claim already in pool, skipping")
            return False

        if self._in_progress(tx, Operation.CLAIM):
            return False

        if not self.wallet.is_next_account_free():
            logger.debug(f"[{tx.address}] Next account is busy, claim postponed")
            return False

        balance = await self.chain.get_balance(self.wallet.next_account.address)
        decision = await self.manager.should_claim(tx, balance)
        if not decision.should_act:
            return False

        opts = TransactionOptions(
            to=tx.address,
            value=tx.required_deposit,
            gas=CLAIMING_GAS_ESTIMATE,
            gas_price=decision.gas_price,
            data=CLAIM_SELECTOR,
            operation=Operation.CLAIM,
        )
        receipt = await self.wallet.send_from_next(opts)
        success = self._handle_receipt(tx, receipt, Operation.CLAIM)

        if receipt.status in BROADCAST_STATUSES:
            self.stats.record_claim(
                receipt.from_address, tx.address, transaction_cost(receipt.receipt), success
            )
        return success

    async def execute(self, tx: TrackedTransaction) -> bool:
        """Try to execute ``tx``. Returns True when the execution was mined successfully."""
        if not self.wallet.get_accounts():
            logger.warning("No accounts available to execute")
            return False

        if self._in_pool(tx, Operation.EXECUTE, min_gas_price=tx.gas_price):
            logger.debug(f"[{tx.address}] Execution already in pool, skipping")
            return False

        if self._in_progress(tx, Operation.EXECUTE):
            return False

        decision = await self.manager.should_execute(tx)
        if not decision.should_act:
            return False

        opts = TransactionOptions(
            to=tx.address,
            value=0,
            gas=estimated_execution_gas(tx),
            gas_price=decision.gas_price,
            data=EXECUTE_SELECTOR,
            operation=Operation.EXECUTE,
        )

        # The claimer holds the reserved window, send from it when it is ours
        if tx.is_claimed and self.wallet.is_known_address(tx.claimed_by):
            receipt = await self.wallet.send_from_account(tx.claimed_by, opts)
        else:
            receipt = await self.wallet.send_from_next(opts)
        success = self._handle_receipt(tx, receipt, Operation.EXECUTE)

        if receipt.status in BROADCAST_STATUSES:
            bounty = tx.bounty if success else 0
            self.stats.record_execution(
                receipt.from_address, tx.address, transaction_cost(receipt.receipt), bounty, success
            )
        return success

    def _in_pool(self, tx: TrackedTransaction, operation: Operation, min_gas_price: Optional[int] = None) -> bool:
        if self.txpool is None or not self.txpool.running():
            return False
        return self.txpool.has_pending(tx.address, operation, min_gas_price)

    def _in_progress(self, tx: TrackedTransaction, operation: Operation) -> bool:
        if self.wallet.has_pending_transaction(tx.address, operation):
            logger.debug(f"[{tx.address}] {operation.name} pending in wallet")
            return True
        if self.wallet.is_waiting_for_confirmation(tx.address, operation):
            logger.debug(f"[{tx.address}] {operation.name} waiting for confirmations")
            return True
        return False

    @staticmethod
    def _handle_receipt(tx: TrackedTransaction, receipt: WalletReceipt, operation: Operation) -> bool:
        if receipt.status == TxSendStatus.OK:
            logger.info(f"✅ [{tx.address}] {operation.name} succeeded from {receipt.from_address}")
            return True

        if receipt.status in BROADCAST_STATUSES:
            logger.error(f"❌ [{tx.address}] {operation.name} {receipt.status.value} from {receipt.from_address}")
        else:
            logger.info(f"[{tx.address}] {operation.name} not sent: {receipt.status.value}")
        return False
