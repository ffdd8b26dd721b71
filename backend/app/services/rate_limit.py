"""
In-memory fixed-window rate limiter.

Each key gets a bucket holding a request count and the absolute time at
which the window ends. The first request of a window creates the bucket
with count=1; requests are admitted while count < limit; once the window
end has passed the next request starts a fresh window.

State lives in a single process. Running several workers or instances gives
each its own buckets, so the effective limit is per process.

Expired buckets are swept opportunistically (at most once per
``sweep_interval`` seconds, during ``check``) and the map is capped at
``max_keys`` entries, evicting the least recently used bucket first.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

_DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60
_DEFAULT_MAX_KEYS = 10_000


@dataclass
class _Bucket:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    ok: bool
    remaining: int
    reset_at: float


class RateLimiter:
    """Fixed-window request counter keyed by client identity."""

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = _DEFAULT_SWEEP_INTERVAL_SECONDS,
        max_keys: int = _DEFAULT_MAX_KEYS,
    ) -> None:
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._max_keys = max_keys
        self._buckets: "OrderedDict[str, _Bucket]" = OrderedDict()
        self._lock = threading.Lock()
        self._next_sweep = clock() + sweep_interval

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: str) -> bool:
        return key in self._buckets

    def check(self, key: str, limit: int, window_seconds: float) -> RateLimitResult:
        """
        Count one request against ``key`` and report whether it is admitted.

        A rejected request does not increment the counter.
        """
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep_locked(now)

            bucket = self._buckets.get(key)

            if bucket is None or bucket.reset_at <= now:
                bucket = _Bucket(count=1, reset_at=now + window_seconds)
                self._buckets[key] = bucket
                self._buckets.move_to_end(key)
                self._enforce_capacity()
                return RateLimitResult(
                    ok=True,
                    remaining=max(limit - 1, 0),
                    reset_at=bucket.reset_at,
                )

            self._buckets.move_to_end(key)

            if bucket.count >= limit:
                return RateLimitResult(ok=False, remaining=0, reset_at=bucket.reset_at)

            bucket.count += 1
            return RateLimitResult(
                ok=True,
                remaining=max(limit - bucket.count, 0),
                reset_at=bucket.reset_at,
            )

    def sweep(self) -> int:
        """Drop every expired bucket. Returns the number of buckets removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, bucket in self._buckets.items() if bucket.reset_at <= now]
        for key in expired:
            del self._buckets[key]
        self._next_sweep = now + self._sweep_interval
        if expired:
            logger.debug("Rate limiter swept %d expired bucket(s)", len(expired))
        return len(expired)

    def _enforce_capacity(self) -> None:
        while len(self._buckets) > self._max_keys:
            key, _ = self._buckets.popitem(last=False)
            logger.warning("Rate limiter at capacity (%d keys); evicted %r", self._max_keys, key)
