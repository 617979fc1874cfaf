from fastapi import Depends
from groupplan.core.cache import RateLimitStore
from groupplan.core.config import settings
from groupplan.core.rate_limit import RateLimiter
from groupplan.core.redis_lifecyle import get_rate_limit_store
from groupplan.dependencies.auth import get_current_user
from groupplan.models.user.user import User


def rate_limit(scope: str, limit: int, window_seconds: int):
    async def limiter(
        current_user: User = Depends(get_current_user),
        store: RateLimitStore = Depends(get_rate_limit_store),
    ):
        await RateLimiter(store, scope, limit, window_seconds).hit(current_user.id)
    return limiter


invite_rate_limit = rate_limit("invite", settings.INVITE_RATE_LIMIT, settings.INVITE_RATE_WINDOW_SECONDS)
vote_rate_limit = rate_limit("vote", settings.VOTE_RATE_LIMIT, settings.VOTE_RATE_WINDOW_SECONDS)
