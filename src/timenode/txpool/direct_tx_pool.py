"""Simplified pool that inspects raw pending transactions instead of pending logs."""
from typing import Any

from ..chain.interface import Subscription
from .tx_pool import BaseTxPool

PENDING_TRANSACTIONS = "newPendingTransactions"


class DirectTxPool(BaseTxPool):
    """Pool fed by pending transaction hashes, keeping claim() and execute() calls."""

    topics = [PENDING_TRANSACTIONS]

    async def _subscribe(self, topic: str) -> Subscription:
        return await self.chain.subscribe_pending_transactions()

    async def _handle(self, topic: str, item: Any) -> None:
        size = len(self.pool)
        await self.processor.process_transaction(item, self.pool)
        if len(self.pool) > size:
            self.stats["entries_added"] += 1
