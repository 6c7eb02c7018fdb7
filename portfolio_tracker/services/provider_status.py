"""In-memory provider disable windows for failover resolution."""

from __future__ import annotations

import threading
import time


class ProviderStatus:
    """Tracks temporary provider disable windows after rate-limit answers."""

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._disabled_until: dict[str, float] = {}

    def disable_provider(self, provider: str, ttl_seconds: int) -> float:
        until = self._clock() + max(1, ttl_seconds)
        with self._lock:
            self._disabled_until[provider] = max(self._disabled_until.get(provider, 0.0), until)
            return self._disabled_until[provider]

    def is_disabled(self, provider: str) -> bool:
        return self.get_disabled_until(provider) is not None

    def get_disabled_until(self, provider: str) -> float | None:
        with self._lock:
            until = self._disabled_until.get(provider)
            if until is None:
                return None
            if until <= self._clock():
                self._disabled_until.pop(provider, None)
                return None
            return until

    def snapshot(self) -> dict[str, float]:
        now = self._clock()
        with self._lock:
            return {name: until for name, until in self._disabled_until.items() if until > now}
