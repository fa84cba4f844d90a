"""
Short-lived result cache with TTL support.

Shared between concurrent calls (and between worker threads), so every
access goes through one lock.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)


class TTLCache:
    def __init__(
        self,
        ttl_seconds: float = 3600,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max = max(1, max_entries)
        self._clock = clock
        self._data: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def _cleanup(self, now: float) -> None:
        expired = [k for k, (ts, _) in self._data.items() if now - ts >= self._ttl]
        for k in expired:
            del self._data[k]

    def get(self, key: Hashable) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            ts, value = entry
            if self._clock() - ts >= self._ttl:
                del self._data[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            now = self._clock()
            self._cleanup(now)
            self._data.pop(key, None)
            self._data[key] = (now, value)
            while len(self._data) > self._max:
                evicted, _ = self._data.popitem(last=False)
                logger.debug("cache evicted %s", evicted)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cleanup(self._clock())
            return len(self._data)
