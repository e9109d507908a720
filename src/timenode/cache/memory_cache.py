"""In-memory cache of tracked transaction addresses."""
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class MemoryCache:
    """
    Address keyed cache used by the scanner.

    Values are opaque to the cache. The scanner only routes addresses whose
    value is truthy, so storing a falsy value parks an address without
    forgetting it.
    """

    def __init__(self):
        self._entries: Dict[str, Any] = {}

    def get(self, address: str, default: Optional[Any] = None) -> Any:
        return self._entries.get(address.lower(), default)

    def set(self, address: str, value: Any) -> None:
        key = address.lower()
        if key not in self._entries:
            logger.debug(f"[{key}] Cached")
        self._entries[key] = value

    def has(self, address: str) -> bool:
        return address.lower() in self._entries

    def delete(self, address: str) -> None:
        key = address.lower()
        if key in self._entries:
            del self._entries[key]
            logger.debug(f"[{key}] Removed from cache")

    def stored(self) -> List[str]:
        """Snapshot of cached addresses."""
        return list(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)
