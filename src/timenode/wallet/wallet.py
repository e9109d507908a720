"""
Managed accounts that sign, broadcast and confirm TimeNode transactions.

Sends go through two confirmation phases: one block to learn the outcome,
then a deeper wait so a transaction mined in an uncle is reported instead of
being counted as done.
"""
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address
from web3.exceptions import ContractLogicError

from ..chain.interface import ChainInterface
from ..exceptions import ConfigurationError, WalletLoadError
from ..models import Operation, TransactionOptions
from .account_state import AccountState, TransactionState

logger = logging.getLogger(__name__)

CONFIRMATION_BLOCKS = 6
SUCCESS_STATUSES = (True, 1, "0x1", "0x01")


class TxSendStatus(str, Enum):
    """Outcome of a wallet send attempt."""
    OK = "ok"
    FAIL = "fail"
    PROGRESS = "progress"
    BUSY = "busy"
    NOT_ENOUGH_FUNDS = "not_enough_funds"
    MINED_IN_UNCLE = "mined_in_uncle"
    UNKNOWN_ERROR = "unknown_error"


@dataclass
class WalletReceipt:
    """Result of a send: the account used, the status and the receipt when mined."""
    from_address: str
    status: TxSendStatus
    receipt: Optional[Dict[str, Any]] = None


def is_revert_error(error: Exception) -> bool:
    """True when a broadcast error is the contract reverting, not a transport failure."""
    return isinstance(error, ContractLogicError) or "reverted by the evm" in str(error).lower()


def is_receipt_successful(receipt: Optional[Dict[str, Any]]) -> bool:
    if not receipt:
        return False
    return receipt.get("status") in SUCCESS_STATUSES


class Wallet:
    """Pool of local accounts with round-robin selection and guarded sends."""

    def __init__(
        self,
        chain: ChainInterface,
        account_state: Optional[AccountState] = None,
        chain_id: Optional[int] = None,
        confirmation_timeout: Optional[float] = None
    ):
        self.chain = chain
        self.account_state = account_state or AccountState()
        self.chain_id = chain_id
        self.confirmation_timeout = confirmation_timeout

        # Selection cursor, not the chain nonce
        self.nonce = 0
        self.accounts: List[LocalAccount] = []

    @property
    def next_account(self) -> LocalAccount:
        return self.accounts[self.nonce % len(self.accounts)]

    def create(self, num_accounts: int) -> None:
        for _ in range(num_accounts):
            self.add(Account.create())

    def add(self, account: LocalAccount) -> LocalAccount:
        if not self.is_known_address(account.address):
            self.accounts.append(account)
        return account

    def load_private_keys(self, private_keys: List[str]) -> None:
        for private_key in private_keys:
            try:
                account = Account.from_key(private_key)
            except (ValueError, TypeError) as e:
                raise WalletLoadError(f"Couldn't load private key: {e}") from e
            self.add(account)

        logger.info(f"🔑 Loaded {len(private_keys)} private keys")

    def decrypt(self, keystores: List[Union[str, Dict[str, Any]]], password: Optional[str]) -> None:
        if not password:
            raise ConfigurationError(
                "Unable to unlock the wallet. Please provide a password as a config param"
            )

        for keystore in keystores:
            if isinstance(keystore, str):
                keystore = json.loads(keystore)
            try:
                private_key = Account.decrypt(keystore, password)
            except ValueError as e:
                raise WalletLoadError(f"Couldn't decrypt key store. Wrong password? {e}") from e
            self.add(Account.from_key(private_key))

        logger.info(f"🔓 Decrypted {len(keystores)} key stores")

    def encrypt(self, password: str, **kwargs) -> List[Dict[str, Any]]:
        """Export every account as an encrypted keystore document."""
        return [account.encrypt(password, **kwargs) for account in self.accounts]

    def get_accounts(self) -> List[LocalAccount]:
        return self.accounts

    def get_addresses(self) -> List[str]:
        return [account.address for account in self.accounts]

    def is_known_address(self, address: str) -> bool:
        return any(addr.lower() == address.lower() for addr in self.get_addresses())

    def is_wallet_able_to_send_tx(self, idx: int) -> bool:
        if idx < 0 or idx >= len(self.accounts):
            raise IndexError("Index is outside range of addresses.")
        return self.is_account_able_to_send_tx(self.accounts[idx].address)

    def is_account_able_to_send_tx(self, account: str) -> bool:
        return not self.account_state.has_pending(account)

    def is_next_account_free(self) -> bool:
        return self.is_wallet_able_to_send_tx(self.nonce % len(self.accounts))

    def is_waiting_for_confirmation(self, to: str, operation: Operation) -> bool:
        return self.account_state.is_sent(to, operation)

    def has_pending_transaction(self, to: str, operation: Operation) -> bool:
        return self.account_state.is_pending(to, operation)

    async def get_nonce(self, account: str) -> int:
        return await self.chain.get_transaction_count(account)

    async def send_from_next(self, opts: TransactionOptions) -> WalletReceipt:
        """Send from the account under the round-robin cursor, advancing it unconditionally."""
        idx = self.nonce % len(self.accounts)
        self.nonce += 1
        return await self.send_from_index(idx, opts)

    async def send_from_index(self, idx: int, opts: TransactionOptions) -> WalletReceipt:
        if idx < 0 or idx >= len(self.accounts):
            raise IndexError("Index is outside range of addresses.")
        return await self.send_from_account(self.accounts[idx].address, opts)

    async def send_from_account(self, from_address: str, opts: TransactionOptions) -> WalletReceipt:
        """
        Sign, broadcast and confirm a transaction from ``from_address``.

        Args:
            from_address: Address of an account held by this wallet
            opts: Transaction parameters and the operation it performs

        Returns:
            WalletReceipt whose status reports the outcome; failures are
            statuses, not exceptions
        """
        operation = opts.operation

        if self.has_pending_transaction(opts.to, operation):
            return WalletReceipt(from_address, TxSendStatus.PROGRESS)

        balance = await self.chain.get_balance(from_address)
        if balance == 0:
            logger.info(f"{TxSendStatus.NOT_ENOUGH_FUNDS.value} {from_address}")
            return WalletReceipt(from_address, TxSendStatus.NOT_ENOUGH_FUNDS)

        account = self._find_account(from_address)
        nonce = await self.get_nonce(from_address)
        signed_tx = self._sign_transaction(account, nonce, opts)

        # Another send may have taken this account while we were signing
        if not self.is_account_able_to_send_tx(from_address):
            return WalletReceipt(from_address, TxSendStatus.BUSY)

        try:
            self.account_state.set(from_address, opts.to, operation, TransactionState.PENDING)
            logger.info(f"Sending {operation.name} to {opts.to} from {from_address}")

            result = await self.chain.send_raw_transaction(signed_tx.raw_transaction)
            if result.error is not None and not is_revert_error(result.error):
                raise result.error

            tx_hash = result.tx_hash or signed_tx.hash.to_0x_hex()
            receipt = await self.chain.wait_for_confirmations(
                tx_hash, 1, timeout=self.confirmation_timeout
            )
            self.account_state.set(from_address, opts.to, operation, TransactionState.SENT)
            logger.debug(f"Receipt for {opts.to}: {receipt}")
        except Exception as e:
            self.account_state.set(from_address, opts.to, operation, TransactionState.ERROR)
            logger.error(f"❌ Failed sending {operation.name} to {opts.to}: {e}")
            return WalletReceipt(from_address, TxSendStatus.UNKNOWN_ERROR)

        try:
            logger.debug(f"Awaiting confirmation for tx {tx_hash} from {from_address}")
            receipt = await self.chain.wait_for_confirmations(
                tx_hash, CONFIRMATION_BLOCKS, timeout=self.confirmation_timeout
            )
            self.account_state.set(from_address, opts.to, operation, TransactionState.CONFIRMED)
            logger.debug(f"Transaction {tx_hash} from {from_address} confirmed")
        except Exception as e:
            self.account_state.set(from_address, opts.to, operation, TransactionState.ERROR)
            logger.error(f"Transaction {tx_hash} to {opts.to} not confirmed: {e}")
            return WalletReceipt(from_address, TxSendStatus.MINED_IN_UNCLE)

        status = TxSendStatus.OK if is_receipt_successful(receipt) else TxSendStatus.FAIL
        return WalletReceipt(from_address, status, receipt)

    def _find_account(self, address: str) -> LocalAccount:
        for account in self.accounts:
            if account.address.lower() == address.lower():
                return account
        raise KeyError(f"Unknown account {address}")

    def _sign_transaction(self, account: LocalAccount, nonce: int, opts: TransactionOptions):
        transaction = {
            "nonce": nonce,
            "to": to_checksum_address(opts.to),
            "gas": opts.gas,
            "gasPrice": opts.gas_price,
            "value": opts.value,
            "data": opts.data,
        }
        if self.chain_id is not None:
            transaction["chainId"] = self.chain_id

        return account.sign_transaction(transaction)
