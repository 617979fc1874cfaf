import pytest

from groupplan.core.cache import MemoryRateLimitStore
from groupplan.core.errors import RateLimitedError
from groupplan.core.rate_limit import RateLimiter


async def test_memory_store_counts_until_deadline(clock):
    store = MemoryRateLimitStore(clock)

    assert await store.get("k") is None
    assert await store.incr("k") == 1
    await store.expire("k", 10)
    assert await store.incr("k") == 2

    clock.advance(seconds=11)
    assert await store.get("k") is None
    assert await store.incr("k") == 1


async def test_limiter_rejects_past_the_limit(clock):
    limiter = RateLimiter(MemoryRateLimitStore(clock), "vote", limit=3, window_seconds=60, clock=clock)

    assert await limiter.hit(7) == 2
    await limiter.hit(7)
    await limiter.hit(7)
    with pytest.raises(RateLimitedError):
        await limiter.hit(7)

    # other identifiers have their own window
    assert await limiter.remaining(8) == 3


async def test_limiter_resets_in_next_window(clock):
    limiter = RateLimiter(MemoryRateLimitStore(clock), "invite", limit=1, window_seconds=60, clock=clock)
    await limiter.hit("user")
    assert await limiter.remaining("user") == 0

    clock.advance(seconds=61)

    assert await limiter.remaining("user") == 1
    await limiter.hit("user")



async def test_memory_store_drops_past_windows(clock):
    store = MemoryRateLimitStore(clock)
    limiter = RateLimiter(store, "vote", limit=5, window_seconds=60, clock=clock)

    for _ in range(1000):
        await limiter.hit(1)
        clock.advance(seconds=61)

    assert len(store) <= 1
