"""
Status derivation and dispatch of tracked transactions.

Status is re-derived from the request's windows on every pass because
transitions are driven by time, not by events. The router remembers the
furthest status it reported per address and never reports an earlier one.
"""
import logging
from typing import Dict, Optional

from ..cache.memory_cache import MemoryCache
from ..models import TrackedTransaction, TxStatus
from ..wallet.wallet import Wallet
from .actions import Actions

logger = logging.getLogger(__name__)


def derive_status(tx: TrackedTransaction, now: int) -> TxStatus:
    """Window status of ``tx`` at ``now`` (block number or timestamp)."""
    if tx.was_called:
        return TxStatus.EXECUTED
    if tx.is_cancelled:
        return TxStatus.MISSED
    if now < tx.claim_window_start:
        return TxStatus.BEFORE_CLAIM_WINDOW
    if now < tx.claim_window_end:
        return TxStatus.CLAIM_WINDOW
    if now < tx.window_start:
        return TxStatus.FREEZE_PERIOD
    if now <= tx.execution_window_end:
        return TxStatus.EXECUTION_WINDOW
    return TxStatus.MISSED


class TxRouter:
    """Routes a refreshed tracked transaction to the action its status calls for."""

    def __init__(self, actions: Actions, cache: MemoryCache, wallet: Wallet, claiming: bool = False):
        self.actions = actions
        self.cache = cache
        self.wallet = wallet
        self.claiming = claiming
        self.statuses: Dict[str, TxStatus] = {}

    async def get_status(self, tx: TrackedTransaction, now: Optional[int] = None) -> TxStatus:
        now = await tx.now() if now is None else now
        address = tx.address.lower()

        status = derive_status(tx, now)
        previous = self.statuses.get(address)
        if previous is not None and previous > status:
            logger.debug(f"[{address}] Keeping status {previous.name} over {status.name}")
            status = previous

        self.statuses[address] = status
        return status

    async def route(self, tx: TrackedTransaction) -> TxStatus:
        now = await tx.now()
        status = await self.get_status(tx, now)
        logger.debug(f"[{tx.address}] Status {status.name}")

        if status == TxStatus.CLAIM_WINDOW:
            await self._claim(tx)
        elif status == TxStatus.EXECUTION_WINDOW:
            await self._execute(tx, now)
        elif status.is_final:
            self._finalize(tx, status)

        return status

    def is_reserved_for_other(self, tx: TrackedTransaction, now: int) -> bool:
        """True while another claimer still holds the reserved execution window."""
        if not tx.is_claimed or self.wallet.is_known_address(tx.claimed_by):
            return False
        return now < tx.reserved_window_end

    async def _claim(self, tx: TrackedTransaction) -> None:
        if not self.claiming:
            return
        if tx.is_claimed:
            logger.debug(f"[{tx.address}] Already claimed by {tx.claimed_by}")
            return
        await self.actions.claim(tx)

    async def _execute(self, tx: TrackedTransaction, now: int) -> None:
        if self.is_reserved_for_other(tx, now):
            logger.debug(f"[{tx.address}] In reserved window of {tx.claimed_by}")
            return
        await self.actions.execute(tx)

    def _finalize(self, tx: TrackedTransaction, status: TxStatus) -> None:
        address = tx.address.lower()
        self.cache.delete(address)
        self.statuses.pop(address, None)
        logger.info(f"[{address}] {status.name}, no longer tracked")
