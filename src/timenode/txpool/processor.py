"""Decoding of pending claim/execute activity into pool entries."""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from web3 import Web3

from ..chain.interface import ChainInterface
from ..models import CLAIM_SELECTOR, EXECUTE_SELECTOR, Operation

logger = logging.getLogger(__name__)

CLAIMED_EVENT = Web3.keccak(text="Claimed()").to_0x_hex()
EXECUTED_EVENT = Web3.keccak(text="Executed(uint256,uint256,uint256)").to_0x_hex()


@dataclass
class PoolEntry:
    """A claim or execute seen in the mempool before confirmation."""
    to: str
    gas_price: int
    operation: Operation
    timestamp: float = field(default_factory=time.time)


def to_hex(value: Any) -> str:
    """Normalize HexBytes/bytes/str values from the provider to lowercase 0x-hex."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    value = str(value).lower()
    return value if value.startswith("0x") else "0x" + value


def operation_for_input(data: Any) -> Optional[Operation]:
    """Operation a raw transaction performs, judged by its function selector."""
    data = to_hex(data or b"")
    if data.startswith(CLAIM_SELECTOR):
        return Operation.CLAIM
    if data.startswith(EXECUTE_SELECTOR):
        return Operation.EXECUTE
    return None


class TxPoolProcessor:
    """Upserts pool entries for pending logs and pending transactions."""

    def __init__(self, chain: ChainInterface, clock: Callable[[], float] = time.time):
        self.chain = chain
        self.clock = clock

    async def process_log(
        self,
        log: Dict[str, Any],
        operation: Operation,
        pool: Dict[str, PoolEntry]
    ) -> None:
        tx_hash = to_hex(log["transactionHash"])

        if log.get("removed"):
            pool.pop(tx_hash, None)
            return

        transaction = await self.chain.get_transaction(tx_hash)
        if not transaction:
            logger.debug(f"Pending transaction {tx_hash} no longer available")
            return

        pool[tx_hash] = PoolEntry(
            to=to_hex(log["address"]),
            gas_price=int(transaction.get("gasPrice", 0)),
            operation=operation,
            timestamp=self.clock()
        )
        logger.debug(f"Pool {operation.name} {tx_hash} -> {log['address']}")

    async def process_transaction(self, tx_hash: Any, pool: Dict[str, PoolEntry]) -> None:
        tx_hash = to_hex(tx_hash)
        transaction = await self.chain.get_transaction(tx_hash)
        if not transaction or not transaction.get("to"):
            return

        operation = operation_for_input(transaction.get("input"))
        if operation is None:
            return

        pool[tx_hash] = PoolEntry(
            to=to_hex(transaction["to"]),
            gas_price=int(transaction.get("gasPrice", 0)),
            operation=operation,
            timestamp=self.clock()
        )
        logger.debug(f"Pool {operation.name} {tx_hash} -> {transaction['to']}")
