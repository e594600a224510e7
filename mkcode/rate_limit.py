"""Tiered request rate limiting.

Three independent budgets, each a fixed window per client IP, enforced by
``RateLimitMiddleware`` so a request is counted before its body is parsed.
Counters live in a ``limits`` storage backend (the engine slowapi is built on);
``memory://`` by default, or any storage URI ``limits`` understands, e.g.
``redis://``.
Increments are atomic in every backend.
"""

import logging
import math
import time
from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse
from limits import RateLimitItem, RateLimitItemPerHour, RateLimitItemPerMinute
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from mkcode.errors import RateLimited

logger = logging.getLogger("mkcode.rate_limit")


@dataclass(frozen=True)
class RateLimitTier:
    name: str
    limit: RateLimitItem
    message: str


GENERAL = RateLimitTier(
    "general",
    RateLimitItemPerMinute(100, 15),
    "Too many requests, please try again later.",
)
AUTH = RateLimitTier(
    "auth",
    RateLimitItemPerMinute(5, 15),
    "Too many login attempts, please try again after 15 minutes.",
)
RESET = RateLimitTier(
    "reset",
    RateLimitItemPerHour(3, 1),
    "Too many password reset requests, please try again after an hour.",
)

TIERS = {tier.name: tier for tier in (GENERAL, AUTH, RESET)}


class RateLimiter:
    """Counts requests per (tier, client) and rejects those over budget."""

    def __init__(self, storage_uri: str = "memory://", enabled: bool = True) -> None:
        self.storage = storage_from_string(storage_uri)
        self.strategy = FixedWindowRateLimiter(self.storage)
        self.enabled = enabled

    def hit(self, tier_name: str, client: str) -> None:
        """Count one request. Raises RateLimited once the tier's budget is spent."""
        if not self.enabled:
            return
        tier = TIERS[tier_name]
        if self.strategy.hit(tier.limit, tier.name, client):
            return

        reset_at, _ = self.strategy.get_window_stats(tier.limit, tier.name, client)
        retry_after = max(1, math.ceil(reset_at - time.time()))
        logger.warning("Rate limit '%s' exceeded by %s", tier.name, client)
        raise RateLimited(tier.message, headers={"Retry-After": str(retry_after)})

    def remaining(self, tier_name: str, client: str) -> int:
        tier = TIERS[tier_name]
        return self.strategy.get_window_stats(tier.limit, tier.name, client).remaining

    def reset(self) -> None:
        self.storage.reset()



# Routes with a tier of their own, charged on top of the general budget
ROUTE_TIERS = {
    ("POST", "/api/register"): AUTH,
    ("POST", "/api/login"): AUTH,
    ("POST", "/api/request-reset"): RESET,
}


def tiers_for(method: str, path: str) -> list[RateLimitTier]:
    """Tiers a request is charged against, in the order they are checked."""
    if not path.startswith("/api/"):
        return []
    tiers = [GENERAL]
    route_tier = ROUTE_TIERS.get((method.upper(), path.rstrip("/")))
    if route_tier is not None:
        tiers.append(route_tier)
    return tiers


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Charge every request to its tiers before the body is read or validated."""

    async def dispatch(self, request: Request, call_next) -> Response:
        limiter: RateLimiter = request.app.state.services.rate_limiter
        client = get_remote_address(request)
        try:
            for tier in tiers_for(request.method, request.url.path):
                limiter.hit(tier.name, client)
        except RateLimited as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
        return await call_next(request)
