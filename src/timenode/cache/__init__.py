"""Cache package for tracked transaction addresses."""
from .memory_cache import MemoryCache

__all__ = [
    "MemoryCache",
]
