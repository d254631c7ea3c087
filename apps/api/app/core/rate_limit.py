"""Rate limiting: slowapi for per-route limits, a moving window for submission quotas."""

from limits import RateLimitItem, RateLimitItemPerHour
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string
from slowapi import Limiter
from starlette.requests import Request

from app.core.config import Settings
from app.core.exceptions import RateLimitError

DEFAULT_LIMIT = "100/15minutes"
AUTH_LIMIT = "5/15minutes"


def get_client_ip(request: Request) -> str:
    """Extract the real client IP behind a reverse proxy."""
    return (
        request.headers.get("CF-Connecting-IP")
        or request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        or (request.client.host if request.client else "127.0.0.1")
    )


def get_rate_limit_key(request: Request) -> str:
    """Key by account once authenticated, by address otherwise."""
    account = getattr(request.state, "account", None)
    if account is not None:
        return f"account:{account.id}"
    return f"ip:{get_client_ip(request)}"


limiter = Limiter(key_func=get_rate_limit_key, default_limits=[DEFAULT_LIMIT])


class SubmissionQuota:
    """Rolling one-hour submission quota, tiered by subscription.

    Counters live in the configured ``limits`` storage (memory or Redis);
    they are best-effort and shared between all workers using that storage.
    """

    def __init__(self, settings: Settings) -> None:
        self.storage = storage_from_string(settings.rate_limit_storage_url)
        self.strategy = MovingWindowRateLimiter(self.storage)
        self.free = RateLimitItemPerHour(settings.submission_quota_free)
        self.premium = RateLimitItemPerHour(settings.submission_quota_premium)

    def item_for(self, premium: bool) -> RateLimitItem:
        return self.premium if premium else self.free

    async def hit(self, key: str, premium: bool) -> None:
        """Consume one unit of quota for ``key``.

        Raises:
            RateLimitError: If the rolling window is already full.
        """
        if not await self.strategy.hit(self.item_for(premium), "submissions", key):
            if premium:
                message = "Analysis limit reached. Please try again later."
            else:
                message = "Analysis limit reached. Upgrade to Premium for more analyses."
            raise RateLimitError(message, code="quota_exceeded")

    async def remaining(self, key: str, premium: bool) -> int:
        stats = await self.strategy.get_window_stats(self.item_for(premium), "submissions", key)
        return stats.remaining

    async def reset(self) -> None:
        await self.storage.reset()
