"""Bounded in-memory product cache with insertion-order eviction."""

from collections import OrderedDict
from typing import List, Optional

from storefront.config import CACHE_LIMIT
from storefront.logging_config import get_logger
from storefront.models import ProductRecord

__all__ = ["ProductCache"]

logger = get_logger("cache")


class ProductCache:
    """Maps handle -> ProductRecord, holding at most ``capacity`` entries.

    When a new handle arrives at capacity, the oldest-inserted entry is
    evicted regardless of how often it was read. Reads never reorder.
    Overwriting a handle replaces its record in place.
    """

    def __init__(self, capacity: int = CACHE_LIMIT):
        if capacity < 1:
            raise ValueError(f"Cache capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: "OrderedDict[str, ProductRecord]" = OrderedDict()

    def get(self, handle: str) -> Optional[ProductRecord]:
        return self._entries.get(handle)

    def put(self, handle: str, record: ProductRecord) -> None:
        if handle not in self._entries and len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full ({self.capacity}), evicted {evicted}")
        self._entries[handle] = record

    def handles(self) -> List[str]:
        """Cached handles, oldest first."""
        return list(self._entries.keys())

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries

    def __len__(self) -> int:
        return len(self._entries)
