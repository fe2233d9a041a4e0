# decentscore/services/cache.py
import threading
import time
from typing import Any, Callable, Dict, Tuple


class TTLCache:
    """
    Small in-process cache with an explicit TTL.

    Providers receive an instance instead of keeping module-level state, so the
    staleness window is a constructor argument and tests can pass a fake clock.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: Dict[Any, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key, default=None):
        with self._lock:
            hit = self._data.get(key)
            if hit and self._clock() - hit[0] < self.ttl_seconds:
                return hit[1]
        return default

    def set(self, key, value) -> None:
        with self._lock:
            self._data[key] = (self._clock(), value)

    def get_or_fetch(self, key, fetch: Callable[[], Any]):
        """
        Cached value for ``key``, or ``fetch()`` stored under it.

        The fetch runs outside the lock, so concurrent misses may fetch twice; the
        last result wins.
        """
        sentinel = object()
        value = self.get(key, sentinel)
        if value is not sentinel:
            return value
        value = fetch()
        self.set(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
