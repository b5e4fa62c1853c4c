"""Per-IP rate limiting with a punitive block period.

Each IP gets a fixed window of ``window_ms`` in which ``max_requests``
requests are allowed. Once an IP has gone over the quota, every request
within ``block_duration_ms`` of the start of its window is rejected as
blocked, even after the window itself has elapsed. The block is checked
before the window reset, and only engages on the request after the one that
crossed the threshold.

Two backends share that algorithm: an in-memory store for single-process
deployments and a Redis store (atomic Lua script) for multiple instances.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, Optional

import redis
import redis.asyncio as aioredis

from edgeguard.app.admission.models import RateLimitDecision, RateLimitEntry
from edgeguard.app.core.config import settings
from edgeguard.app.core.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], int]

DEFAULT_WINDOW_MS = 60_000
DEFAULT_MAX_REQUESTS = 10
DEFAULT_BLOCK_DURATION_MS = 300_000


def now_ms() -> int:
    return int(time.time() * 1000)


class RateLimitBackend(ABC):
    """Abstract base class for rate limit backends."""

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        block_duration_ms: int = DEFAULT_BLOCK_DURATION_MS,
        clock: Optional[Clock] = None,
    ):
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.block_duration_ms = block_duration_ms
        self._clock = clock or now_ms

    @abstractmethod
    async def check(self, ip: str) -> RateLimitDecision:
        """Count a request from ``ip`` and decide whether it is allowed."""

    @abstractmethod
    async def cleanup(self) -> int:
        """Drop state that can no longer affect a decision.

        Returns:
            Number of entries removed
        """

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryRateLimiter(RateLimitBackend):
    """In-process rate limit store.

    Entries live in an OrderedDict kept in least-recently-seen order. Entries
    whose window has elapsed and that are not serving a block are removed by
    ``cleanup()``; when the store reaches ``max_entries`` such entries are
    swept first and then the least recently seen IPs are evicted.
    """

    DEFAULT_MAX_ENTRIES = 100_000

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        block_duration_ms: int = DEFAULT_BLOCK_DURATION_MS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Optional[Clock] = None,
    ):
        super().__init__(window_ms, max_requests, block_duration_ms, clock)
        self._max_entries = max_entries
        self._entries: OrderedDict[str, RateLimitEntry] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, ip: str) -> Optional[RateLimitEntry]:
        return self._entries.get(ip)

    async def check(self, ip: str) -> RateLimitDecision:
        async with self._lock:
            now = self._clock()
            entry = self._entries.get(ip)

            if entry is None:
                self._make_room(now)
                return self._start_window(ip, now)

            self._entries.move_to_end(ip)

            if self._is_blocking(entry, now):
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    reset_time=entry.first_request_at + self.block_duration_ms,
                    blocked=True,
                )

            if now > entry.window_reset_at:
                return self._start_window(ip, now)

            entry.count += 1
            return RateLimitDecision(
                allowed=entry.count <= self.max_requests,
                remaining=max(0, self.max_requests - entry.count),
                reset_time=entry.window_reset_at,
            )

    def _start_window(self, ip: str, now: int) -> RateLimitDecision:
        entry = RateLimitEntry(
            count=1,
            window_reset_at=now + self.window_ms,
            first_request_at=now,
        )
        self._entries[ip] = entry
        self._entries.move_to_end(ip)
        return RateLimitDecision(
            allowed=True,
            remaining=self.max_requests - 1,
            reset_time=entry.window_reset_at,
        )

    def _is_blocking(self, entry: RateLimitEntry, now: int) -> bool:
        return (
            entry.count > self.max_requests
            and now - entry.first_request_at < self.block_duration_ms
        )

    def _is_stale(self, entry: RateLimitEntry, now: int) -> bool:
        # A stale entry would be replaced by a fresh window on its next request,
        # so dropping it does not change any decision.
        return now > entry.window_reset_at and not self._is_blocking(entry, now)

    def _sweep(self, now: int) -> int:
        stale = [ip for ip, entry in self._entries.items() if self._is_stale(entry, now)]
        for ip in stale:
            del self._entries[ip]
        return len(stale)

    def _make_room(self, now: int) -> None:
        if len(self._entries) < self._max_entries:
            return
        self._sweep(now)
        evicted = 0
        while len(self._entries) >= self._max_entries:
            # Least recently seen unblocked IP first; blocked IPs only when nothing else is left
            victim = next(
                (ip for ip, entry in self._entries.items() if not self._is_blocking(entry, now)),
                None,
            )
            if victim is None:
                self._entries.popitem(last=False)
            else:
                del self._entries[victim]
            evicted += 1
        if evicted:
            logger.warning(
                f"Rate limit store full, evicted {evicted} least recently seen entries"
            )

    async def cleanup(self) -> int:
        async with self._lock:
            return self._sweep(self._clock())


# KEYS[1] = entry key
# ARGV = now, window_ms, max_requests, block_duration_ms, ttl_ms
# Returns {allowed, remaining, reset_time, blocked}
RATE_LIMIT_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local max_requests = tonumber(ARGV[3])
local block = tonumber(ARGV[4])
local ttl = tonumber(ARGV[5])

local entry = redis.call('HMGET', key, 'count', 'reset_at', 'first_at')
local count = tonumber(entry[1])
local reset_at = tonumber(entry[2])
local first_at = tonumber(entry[3])

if count ~= nil and count > max_requests and now - first_at < block then
    return {0, 0, first_at + block, 1}
end

if count == nil or now > reset_at then
    redis.call('HSET', key, 'count', 1, 'reset_at', now + window, 'first_at', now)
    redis.call('PEXPIRE', key, ttl)
    return {1, max_requests - 1, now + window, 0}
end

count = redis.call('HINCRBY', key, 'count', 1)
redis.call('PEXPIRE', key, ttl)
local allowed = 0
if count <= max_requests then
    allowed = 1
end
return {allowed, math.max(0, max_requests - count), reset_at, 0}
"""


class RedisRateLimiter(RateLimitBackend):
    """Redis-backed rate limit store shared by several instances.

    Every check runs as a single Lua script so the read-modify-write of an
    entry is atomic. Keys expire after ``max(window, block)`` milliseconds,
    which is when they stop affecting decisions.
    """

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        block_duration_ms: int = DEFAULT_BLOCK_DURATION_MS,
        key_prefix: str = "edgeguard:ratelimit:",
        fail_closed: Optional[bool] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(window_ms, max_requests, block_duration_ms, clock)
        self._redis = redis_client
        self._owns_client = redis_client is None
        self._redis_url = redis_url or settings.redis_url
        self.key_prefix = key_prefix
        self.fail_closed = (
            fail_closed if fail_closed is not None else settings.rate_limit_fail_closed
        )

    def _get_redis(self) -> Any:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    async def check(self, ip: str) -> RateLimitDecision:
        now = self._clock()
        try:
            result = await self._get_redis().eval(
                RATE_LIMIT_SCRIPT,
                1,
                f"{self.key_prefix}{ip}",
                now,
                self.window_ms,
                self.max_requests,
                self.block_duration_ms,
                max(self.window_ms, self.block_duration_ms),
            )
        except redis.ConnectionError as e:
            logger.error(f"Redis connection failed: {e}")
            return self._handle_redis_failure("connection_error", now)
        except redis.TimeoutError as e:
            logger.warning(f"Redis timeout: {e}")
            return self._handle_redis_failure("timeout", now)
        except redis.RedisError as e:
            logger.error(f"Redis error: {e}")
            return self._handle_redis_failure("redis_error", now)

        allowed, remaining, reset_time, blocked = (int(v) for v in result)
        return RateLimitDecision(
            allowed=bool(allowed),
            remaining=remaining,
            reset_time=reset_time,
            blocked=bool(blocked),
        )

    def _handle_redis_failure(self, error_type: str, now: int) -> RateLimitDecision:
        """Apply the configured fail-open/fail-closed policy."""
        if self.fail_closed:
            logger.warning(
                f"Rate limiting fail-closed triggered due to {error_type}. "
                "Request denied."
            )
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                reset_time=now + self.window_ms,
            )

        logger.warning(
            f"Rate limiting fail-open triggered due to {error_type}. "
            "Request allowed without rate limit check."
        )
        return RateLimitDecision(
            allowed=True,
            remaining=self.max_requests,
            reset_time=now + self.window_ms,
        )

    async def cleanup(self) -> int:
        # Keys expire on their own
        return 0

    async def close(self) -> None:
        if self._owns_client and self._redis is not None:
            await self._redis.aclose()
            self._redis = None


class RateLimiter:
    """Rate limiter facade that selects the configured backend.

    Uses Redis when ``rate_limit_backend`` is ``"redis"`` (or ``use_redis``
    is forced), otherwise the in-memory store.
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        block_duration_ms: int = DEFAULT_BLOCK_DURATION_MS,
        max_entries: int = InMemoryRateLimiter.DEFAULT_MAX_ENTRIES,
        use_redis: Optional[bool] = None,
        clock: Optional[Clock] = None,
    ):
        should_use_redis = (
            use_redis if use_redis is not None else settings.rate_limit_backend == "redis"
        )

        if should_use_redis:
            self._backend: RateLimitBackend = RedisRateLimiter(
                window_ms=window_ms,
                max_requests=max_requests,
                block_duration_ms=block_duration_ms,
                clock=clock,
            )
            logger.info("Using Redis rate limiter backend")
        else:
            self._backend = InMemoryRateLimiter(
                window_ms=window_ms,
                max_requests=max_requests,
                block_duration_ms=block_duration_ms,
                max_entries=max_entries,
                clock=clock,
            )
            logger.debug("Using in-memory rate limiter backend")

    @classmethod
    def from_settings(cls, clock: Optional[Clock] = None) -> "RateLimiter":
        return cls(
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max_requests,
            block_duration_ms=settings.rate_limit_block_duration_ms,
            max_entries=settings.rate_limit_max_entries,
            clock=clock,
        )

    @property
    def backend(self) -> RateLimitBackend:
        return self._backend

    @property
    def backend_name(self) -> str:
        return "redis" if isinstance(self._backend, RedisRateLimiter) else "memory"

    @property
    def max_requests(self) -> int:
        return self._backend.max_requests

    async def check(self, ip: str) -> RateLimitDecision:
        return await self._backend.check(ip)

    async def cleanup(self) -> int:
        return await self._backend.cleanup()

    async def close(self) -> None:
        await self._backend.close()

    async def run_cleanup(self, interval_seconds: float) -> None:
        """Sweep stale entries every ``interval_seconds`` until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = await self.cleanup()
            if removed:
                logger.debug(f"Rate limit cleanup removed {removed} entries")
