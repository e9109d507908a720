"""Exceptions raised by the TimeNode execution engine."""
from typing import Optional


class TimeNodeError(Exception):
    """Base exception for TimeNode errors."""
    pass


class ConfigurationError(TimeNodeError):
    """Invalid or incomplete configuration, raised before any network activity."""
    pass


class WalletLoadError(TimeNodeError):
    """A private key or keystore could not be loaded into the wallet."""
    pass


class TransientNetworkError(TimeNodeError):
    """Exception raised for transport-level failures talking to a provider."""

    def __init__(self, message: str, provider_url: Optional[str] = None):
        """
        Initialize network error.

        Args:
            message: Error message
            provider_url: Provider the error occurred on
        """
        self.provider_url = provider_url
        super().__init__(message)

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.provider_url:
            return f"[{self.provider_url}] {base_msg}"
        return base_msg


class SubscriptionError(TransientNetworkError):
    """A log or pending-transaction subscription failed or was closed."""
    pass


class ConfirmationError(TimeNodeError):
    """A broadcast transaction did not reach the requested confirmation depth."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class ReorgError(ConfirmationError):
    """The transaction was seen in a block that was later reorganized away."""
    pass


class ConfirmationTimeout(ConfirmationError):
    """The confirmation depth was not reached before the deadline."""
    pass
