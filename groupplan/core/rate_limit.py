from groupplan.core.cache import RateLimitStore
from groupplan.core.clock import Clock, utcnow
from groupplan.core.errors import RateLimitedError


class RateLimiter:
    """Fixed-window counter per (scope, identifier) on an injected store."""

    def __init__(self, store: RateLimitStore, scope: str, limit: int, window_seconds: int, clock: Clock = utcnow):
        self.store = store
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock

    def _key(self, identifier) -> str:
        window = int(self._clock().timestamp()) // self.window_seconds
        return f"ratelimit:{self.scope}:{identifier}:{window}"

    async def hit(self, identifier) -> int:
        key = self._key(identifier)
        count = await self.store.incr(key)
        if count == 1:
            await self.store.expire(key, self.window_seconds)
        if count > self.limit:
            raise RateLimitedError(f"Too many {self.scope} requests, try again shortly")
        return self.limit - count

    async def remaining(self, identifier) -> int:
        used = await self.store.get(self._key(identifier)) or 0
        return max(self.limit - used, 0)
