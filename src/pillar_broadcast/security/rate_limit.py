"""
pillar_broadcast.security.rate_limit

In-memory fixed-window rate limiter keyed by caller.

Responsibilities:
- Count requests per caller key within a rolling window.
- Deny once a caller exceeds the configured maximum in the current window.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(slots=True)
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    Best-effort abuse deterrent, not a security boundary.

    State is process-local and lost on restart. One instance is created per app
    (see `api.app.create_app`) and injected where needed, so tests get a fresh store.
    """

    def __init__(
        self,
        *,
        max_requests: int = 10,
        window_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    async def allow(self, key: str) -> bool:
        async with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self._window_seconds)
                return True
            window.count += 1
            return window.count <= self._max_requests


# --- Module Notes -----------------------------------------------------------
# Swapping this for a shared store (e.g. Redis) only requires an object with the same
# async `allow(key)` method on `app.state.rate_limiter`.
