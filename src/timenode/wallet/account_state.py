"""Per-(account, target, operation) send-state tracking."""
from enum import Enum
from typing import Dict, Optional, Tuple

from ..models import Operation


class TransactionState(str, Enum):
    """State of the latest send attempt for an (account, target, operation)."""
    PENDING = "pending"
    SENT = "sent"
    CONFIRMED = "confirmed"
    ERROR = "error"


StateKey = Tuple[str, str, Operation]


class AccountState:
    """
    In-memory record of outstanding sends.

    A missing record means the target is free to receive a new send for that
    account/operation pair. Addresses are compared case-insensitively.
    """

    def __init__(self):
        self.states: Dict[StateKey, TransactionState] = {}

    def set(self, account: str, to: str, operation: Operation, state: TransactionState) -> None:
        self.states[(account.lower(), to.lower(), operation)] = state

    def get(self, account: str, to: str, operation: Operation) -> Optional[TransactionState]:
        return self.states.get((account.lower(), to.lower(), operation))

    def has_pending(self, address: str) -> bool:
        """True if any PENDING record involves ``address`` as sender or as target."""
        address = address.lower()
        return any(
            state == TransactionState.PENDING and address in (account, to)
            for (account, to, _), state in self.states.items()
        )

    def is_pending(self, to: str, operation: Operation) -> bool:
        return self._has_state(to, operation, TransactionState.PENDING)

    def is_sent(self, to: str, operation: Operation) -> bool:
        return self._has_state(to, operation, TransactionState.SENT)

    def _has_state(self, to: str, operation: Operation, expected: TransactionState) -> bool:
        to = to.lower()
        return any(
            state == expected and key_to == to and key_operation == operation
            for (_, key_to, key_operation), state in self.states.items()
        )
