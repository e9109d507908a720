"""Chain connector package: the ChainInterface collaborator and its web3 adapter."""
from .interface import (
    BroadcastResult,
    ChainInterface,
    ConnectionEvent,
    ConnectionEventType,
    Subscription,
)
from .web3_chain import Web3ChainInterface

__all__ = [
    "BroadcastResult",
    "ChainInterface",
    "ConnectionEvent",
    "ConnectionEventType",
    "Subscription",
    "Web3ChainInterface",
]
