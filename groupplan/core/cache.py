from typing import Dict, Optional, Protocol, Tuple

import redis.asyncio as redis

from groupplan.core.clock import Clock, utcnow


class RateLimitStore(Protocol):
    async def get(self, key: str) -> Optional[int]: ...

    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, seconds: int) -> None: ...


class RedisRateLimitStore:
    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    async def get(self, key: str) -> Optional[int]:
        data = await self.redis.get(key)
        if data is None:
            return None
        return int(data)

    async def incr(self, key: str) -> int:
        return await self.redis.incr(key)

    async def expire(self, key: str, seconds: int) -> None:
        await self.redis.expire(key, seconds)


class MemoryRateLimitStore:
    """Process-local counters, used when no Redis is configured.

    Expired counters are swept on every ``incr``, so the map only holds keys
    of the current windows.
    """

    def __init__(self, clock: Clock = utcnow):
        self._clock = clock
        self._counters: Dict[str, Tuple[int, Optional[float]]] = {}

    def __len__(self) -> int:
        return len(self._counters)

    def _sweep(self) -> None:
        now = self._clock().timestamp()
        stale = [
            key for key, (_, deadline) in self._counters.items()
            if deadline is not None and now >= deadline
        ]
        for key in stale:
            del self._counters[key]

    def _live(self, key: str) -> Optional[int]:
        entry = self._counters.get(key)
        if entry is None:
            return None
        value, deadline = entry
        if deadline is not None and self._clock().timestamp() >= deadline:
            del self._counters[key]
            return None
        return value

    async def get(self, key: str) -> Optional[int]:
        return self._live(key)

    async def incr(self, key: str) -> int:
        self._sweep()
        entry = self._counters.get(key)
        if entry is None:
            self._counters[key] = (1, None)
            return 1
        value, deadline = entry
        self._counters[key] = (value + 1, deadline)
        return value + 1

    async def expire(self, key: str, seconds: int) -> None:
        current = self._live(key)
        if current is not None:
            self._counters[key] = (current, self._clock().timestamp() + seconds)
