"""Collaborator interface for discovering and loading scheduled transactions."""
from abc import ABC, abstractmethod
from typing import List

from ..models import TrackedTransaction


class TransactionRequestSource(ABC):
    """Looks up scheduled transactions on chain."""

    @abstractmethod
    async def addresses_between(self, from_block: int, to_block: int) -> List[str]:
        """Addresses of requests scheduled within the inclusive block range."""

    @abstractmethod
    def request(self, address: str) -> TrackedTransaction:
        """Tracked transaction bound to ``address``; data is loaded on refresh."""
