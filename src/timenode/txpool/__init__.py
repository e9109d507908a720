"""Transaction pool package for mempool-level claim/execute visibility."""
from .direct_tx_pool import DirectTxPool
from .processor import CLAIMED_EVENT, EXECUTED_EVENT, PoolEntry, TxPoolProcessor
from .tx_pool import SCAN_INTERVAL, TIME_IN_POOL, BaseTxPool, TxPool

__all__ = [
    "BaseTxPool",
    "DirectTxPool",
    "TxPool",
    "TxPoolProcessor",
    "PoolEntry",
    "CLAIMED_EVENT",
    "EXECUTED_EVENT",
    "SCAN_INTERVAL",
    "TIME_IN_POOL",
]
