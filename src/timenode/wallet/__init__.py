"""Wallet package: managed accounts and send-state tracking."""
from .account_state import AccountState, TransactionState
from .wallet import (
    CONFIRMATION_BLOCKS,
    TxSendStatus,
    Wallet,
    WalletReceipt,
    is_receipt_successful,
    is_revert_error,
)

__all__ = [
    "AccountState",
    "TransactionState",
    "CONFIRMATION_BLOCKS",
    "TxSendStatus",
    "Wallet",
    "WalletReceipt",
    "is_receipt_successful",
    "is_revert_error",
]
