"""Very lightweight in-memory rate limiter (per-process, best-effort)."""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from typing import Dict, Optional

MAX_TRACKED_KEYS = 1024


class TokenBucket:
    def __init__(self, rate: float, capacity: float) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.timestamp = time.monotonic()
        self._lock = asyncio.Lock()

    async def consume(self, amount: float = 1.0) -> bool:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.timestamp
            self.timestamp = now
            self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
            if self.tokens >= amount:
                self.tokens -= amount
                return True
            return False


class RateLimiter:
    def __init__(self, rate_per_sec: float, burst: float | None = None) -> None:
        burst = burst if burst is not None else rate_per_sec
        self.bucket = TokenBucket(rate_per_sec, burst)

    async def allow(self) -> bool:
        return await self.bucket.consume()


class PerKeyRateLimiter:
    """
    Per-tool token buckets; ``per_tool`` overrides the rate for named tools.

    At most ``max_keys`` buckets are kept; the least recently used one is
    dropped when a new key arrives.
    """

    def __init__(
        self,
        rate_per_sec: float,
        burst: float | None = None,
        per_tool: Optional[Dict[str, float]] = None,
        max_keys: int = MAX_TRACKED_KEYS,
    ) -> None:
        self.rate = rate_per_sec
        self.burst = burst if burst is not None else rate_per_sec
        self.per_tool = dict(per_tool or {})
        self.max_keys = max_keys
        self._limiters: OrderedDict[str, RateLimiter] = OrderedDict()
        self._lock = asyncio.Lock()

    async def allow(self, key: str) -> bool:
        async with self._lock:
            limiter = self._limiters.get(key)
            if limiter is None:
                if key in self.per_tool:
                    rate = self.per_tool[key]
                    burst = max(rate, 1.0)
                else:
                    rate, burst = self.rate, self.burst
                limiter = RateLimiter(rate, burst)
                self._limiters[key] = limiter
                while len(self._limiters) > self.max_keys:
                    self._limiters.popitem(last=False)
            else:
                self._limiters.move_to_end(key)
        return await limiter.allow()
