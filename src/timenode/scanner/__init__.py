"""Scanning pipeline: cache scan, status routing and claim/execute actions."""
from .actions import Actions
from .cache_scanner import CacheScanner
from .interface import TransactionRequestSource
from .router import TxRouter, derive_status

__all__ = [
    "Actions",
    "CacheScanner",
    "TransactionRequestSource",
    "TxRouter",
    "derive_status",
]
