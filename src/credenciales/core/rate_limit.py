# src/credenciales/core/rate_limit.py
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from redis.asyncio import Redis

from credenciales.core.config import Settings

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Count one request for ``key``; False once ``limit`` is exceeded in the window."""
        ...

    async def sweep(self) -> int:
        ...

    async def close(self) -> None:
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class MemoryRateLimiter:
    """Fixed-window counters kept in process memory."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        async with self._lock:
            now = self._clock()
            entry = self._windows.get(key)
            if entry is None or now >= entry.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + window_seconds)
                return True
            if entry.count >= limit:
                return False
            entry.count += 1
            return True

    async def sweep(self) -> int:
        async with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._windows.items() if now >= entry.reset_at]
            for key in stale:
                del self._windows[key]
        return len(stale)

    async def close(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


class RedisRateLimiter:
    """Same contract backed by Redis counters; key expiry does the sweeping."""

    def __init__(self, client: Redis, prefix: str = "rl"):
        self._client = client
        self._prefix = prefix

    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        redis_key = f"{self._prefix}:{key}"
        # The counter never exists without its TTL: SET NX EX and INCR run in one MULTI/EXEC.
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(redis_key, 0, ex=window_seconds, nx=True)
            pipe.incr(redis_key)
            _, cur = await pipe.execute()
        return cur <= limit

    async def sweep(self) -> int:
        return 0

    async def close(self) -> None:
        await self._client.aclose()


def build_rate_limiter(settings: Settings) -> RateLimiter:
    url = settings.redis_url
    if url:
        client = Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            password=settings.REDIS_PASSWORD,
            max_connections=settings.POOL_SIZE,
        )
        logger.info("Rate limiter backed by Redis at %s", url)
        return RedisRateLimiter(client)
    logger.info("Rate limiter backed by process memory")
    return MemoryRateLimiter()


async def sweep_periodically(limiter: RateLimiter, interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            evicted = await limiter.sweep()
            if evicted:
                logger.debug("Evicted %d stale rate-limit windows", evicted)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Rate-limit sweep failed")


def client_ip(forwarded_for: Optional[str], peer: Optional[str]) -> str:
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return peer or "unknown"
