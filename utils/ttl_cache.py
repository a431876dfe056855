"""Capacity-bounded, time-expiring LRU cache."""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional, Tuple


class TTLCache:
    """LRU cache whose entries expire a fixed time after insertion.

    Reads refresh recency but never extend an entry's lifetime. When full,
    inserting a new key evicts the least recently used entry.
    """

    def __init__(
        self,
        max_entries: int,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Tuple[bool, Optional[Any]]:
        """Return ``(found, value)``. Expired entries are dropped on access."""
        now = self._clock()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return False, None
            expires_at, value = item
            if now >= expires_at:
                del self._data[key]
                return False, None
            self._data.move_to_end(key)
            return True, value

    def set(self, key: Hashable, value: Any) -> None:
        expires_at = self._clock() + self.ttl_seconds
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
            self._data[key] = (expires_at, value)
            while len(self._data) > self.max_entries:
                self._data.popitem(last=False)

    def __contains__(self, key: Hashable) -> bool:
        found, _ = self.get(key)
        return found

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
