"""Per-client admission control using token buckets.

Each ``RateLimiter`` owns one bucket per client key. Buckets are created on the
first request from a key and evicted by ``RateLimitSweeper`` once they have
refilled completely, which bounds memory to recently active clients.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from threading import Lock

from runsight_stage.core.errors import ERR_RATE_LIMIT, ERR_STRICT_RATE_LIMIT
from runsight_stage.core.settings import Settings

logger = logging.getLogger(__name__)

LENIENT_RETRY_AFTER_SECONDS = 60
STRICT_RETRY_AFTER_SECONDS = 120


@dataclass(frozen=True)
class RateLimitPolicy:
    """Fixed parameters shared by every bucket of one limiter."""

    name: str
    rate: float
    burst: int
    retry_after: int
    error_code: str
    message: str

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError("rate must be positive")
        if self.burst < 1:
            raise ValueError("burst must be at least 1")


def lenient_policy(config: Settings) -> RateLimitPolicy:
    """Global policy applied to all traffic."""
    return RateLimitPolicy(
        name="global",
        rate=config.rate_limit_requests_per_second,
        burst=config.rate_limit_burst,
        retry_after=LENIENT_RETRY_AFTER_SECONDS,
        error_code=ERR_RATE_LIMIT,
        message="Rate limit exceeded",
    )


def strict_policy(
    config: Settings, name: str, requests_per_minute: float | None = None
) -> RateLimitPolicy:
    """Policy for sensitive endpoints, expressed in requests per minute."""
    per_minute = (
        config.strict_rate_limit_per_minute
        if requests_per_minute is None
        else requests_per_minute
    )
    return RateLimitPolicy(
        name=name,
        rate=per_minute / 60.0,
        burst=config.strict_rate_limit_burst,
        retry_after=STRICT_RETRY_AFTER_SECONDS,
        error_code=ERR_STRICT_RATE_LIMIT,
        message="Rate limit exceeded for sensitive endpoint",
    )


class TokenBucket:
    """Continuous-refill bucket holding between 0 and ``burst`` tokens.

    Not synchronized; ``RateLimiter`` serializes access.
    """

    __slots__ = ("rate", "burst", "tokens", "updated_at")

    def __init__(self, rate: float, burst: int, now: float) -> None:
        self.rate = rate
        self.burst = burst
        self.tokens = float(burst)
        self.updated_at = now

    def refill(self, now: float) -> None:
        elapsed = now - self.updated_at
        if elapsed > 0:
            self.tokens = min(float(self.burst), self.tokens + elapsed * self.rate)
        self.updated_at = max(self.updated_at, now)

    def try_consume(self, now: float) -> bool:
        """Refill, then take one token if available."""
        self.refill(now)
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False

    def is_full(self, now: float) -> bool:
        self.refill(now)
        return self.tokens >= self.burst


class RateLimiter:
    """Thread-safe map of client keys to token buckets.

    One lock guards the map and every bucket in it, so lookup-or-create, the
    refill/debit pair and eviction never interleave for the same key.
    """

    def __init__(
        self,
        policy: RateLimitPolicy,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        """Debit one token for ``key`` and report whether the request is admitted.

        Never blocks beyond the internal lock; a rejected caller is expected to
        fail fast rather than wait.
        """
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(self.policy.rate, self.policy.burst, now)
                self._buckets[key] = bucket
            return bucket.try_consume(now)

    def sweep(self) -> int:
        """Evict every bucket that has refilled to capacity; return how many."""
        with self._lock:
            now = self._clock()
            idle = [key for key, bucket in self._buckets.items() if bucket.is_full(now)]
            for key in idle:
                del self._buckets[key]
            return len(idle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._buckets


class RateLimitSweeper:
    """Periodically evicts idle buckets from a set of limiters.

    Runs on its own interval, independent of request volume.
    """

    def __init__(self, limiters: Iterable[RateLimiter], interval: float = 300.0) -> None:
        self.limiters = list(limiters)
        self.interval = interval
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.running:
            self._stopping = asyncio.Event()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    def sweep_once(self) -> int:
        evicted = 0
        for limiter in self.limiters:
            removed = limiter.sweep()
            if removed:
                logger.debug(
                    "Evicted %d idle buckets from %s limiter (%d remain)",
                    removed,
                    limiter.policy.name,
                    len(limiter),
                )
            evicted += removed
        return evicted

    async def _run(self) -> None:
        interval = max(0.01, float(self.interval))
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                self.sweep_once()
