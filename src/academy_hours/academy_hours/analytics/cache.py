from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable, Optional


class TTLCache:
    """Small in-process cache for analytics reports.

    Entries expire after ``ttl_seconds``; the lock only guards the dict, so two
    threads missing at once may both compute, and the later write wins.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            now = self._clock()
            # Expired entries go on every write; report keys include caller-chosen windows.
            for stale in [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]:
                del self._entries[stale]
            self._entries[key] = (now + self._ttl, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any], *, force_refresh: bool = False) -> Any:
        if not force_refresh:
            cached = self.get(key)
            if cached is not None:
                return cached
        value = compute()
        self.set(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
