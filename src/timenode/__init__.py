"""TimeNode: claims and executes scheduled transactions for their bounty."""
from .node import TimeNode

__version__ = "0.1.0"

__all__ = [
    "TimeNode",
]
