"""Per-provider minimum-interval limiter shared by worker threads."""

from __future__ import annotations

import time
from collections import defaultdict
from threading import Lock


class RateLimiterRegistry:
    """Spaces consecutive calls to one provider; different providers never wait on each other."""

    def __init__(self, min_interval_seconds: float = 0.2) -> None:
        self.min_interval_seconds = max(0.0, min_interval_seconds)
        self._next_slot: dict[str, float] = {}
        self._locks: defaultdict[str, Lock] = defaultdict(Lock)
        self._registry_lock = Lock()

    def _lock_for(self, provider: str) -> Lock:
        with self._registry_lock:
            return self._locks[provider]

    def wait(self, provider: str) -> float:
        """Block until the provider's next slot; returns the seconds slept."""
        if self.min_interval_seconds <= 0:
            return 0.0
        with self._lock_for(provider):
            now = time.monotonic()
            slot = max(now, self._next_slot.get(provider, now))
            self._next_slot[provider] = slot + self.min_interval_seconds
        delay = slot - now
        if delay > 0:
            time.sleep(delay)
        return max(0.0, delay)
