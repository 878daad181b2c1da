"""
backend/app/services/provider_rate_limiter.py

Purpose:
    Process-local requests-per-minute limiter shared by all calls to one
    provider. Keeps a sync burst (teams, three fixture pages, squads) inside
    the upstream plan's per-minute quota.

Dependencies:
    - asyncio
    - time
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque

logger = logging.getLogger("tawaqo.provider_rate_limiter")

WINDOW_SECONDS = 60.0


class ProviderRateLimiter:
    """Sliding one-minute window of request timestamps per provider."""

    def __init__(self) -> None:
        self._windows: dict[str, deque[float]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def acquire(self, provider: str, rpm: int | None) -> None:
        if rpm is None or int(rpm) <= 0:
            return
        key = str(provider or "").strip().lower()
        if not key:
            return

        limit = int(rpm)
        window = self._windows.setdefault(key, deque())
        lock = self._locks.setdefault(key, asyncio.Lock())

        # Holding the lock while sleeping keeps callers in arrival order.
        async with lock:
            while True:
                now = time.monotonic()
                while window and now - window[0] >= WINDOW_SECONDS:
                    window.popleft()
                if len(window) < limit:
                    window.append(now)
                    return
                wait_seconds = WINDOW_SECONDS - (now - window[0])
                logger.debug("%s rate limit reached, waiting %.1fs", key, wait_seconds)
                await asyncio.sleep(wait_seconds)

    def in_window(self, provider: str) -> int:
        return len(self._windows.get(str(provider or "").strip().lower(), ()))

    def reset(self) -> None:
        self._windows.clear()
        self._locks.clear()


provider_rate_limiter = ProviderRateLimiter()
