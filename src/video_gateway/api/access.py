"""Cross-origin and rate-limit policy for the HTTP API."""

import logging
import math
import time
from collections import deque
from typing import Callable, Iterable

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def is_origin_allowed(origin: str | None, allowlist: Iterable[str]) -> bool:
    """Decide whether a request's Origin may be granted cross-origin access.

    Requests without an Origin (curl, server-to-server) are always allowed.
    """
    if not origin:
        return True
    return origin.rstrip("/") in allowlist


def is_same_origin(origin: str | None, scheme: str, host: str | None) -> bool:
    """Check whether Origin names the server itself, e.g. the bundled page."""
    if not origin or not host:
        return False
    return origin.rstrip("/").lower() == f"{scheme}://{host}".lower()


class AllowListCORSMiddleware(CORSMiddleware):
    """CORS middleware whose origin decision is is_origin_allowed.

    With enforce=False, disallowed origins are logged but still granted.
    """

    def __init__(self, app: ASGIApp, allowlist: Iterable[str], enforce: bool = True):
        self.allowlist = tuple(allowlist)
        self.enforce = enforce
        super().__init__(
            app,
            allow_origins=self.allowlist,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
            allow_credentials=True,
            expose_headers=["Content-Disposition"],
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            headers = Headers(scope=scope)
            if is_same_origin(headers.get("origin"), scope.get("scheme", "http"), headers.get("host")):
                # Browsers need no CORS grant for their own origin
                await self.app(scope, receive, send)
                return
        await super().__call__(scope, receive, send)

    def is_allowed_origin(self, origin: str) -> bool:
        if is_origin_allowed(origin, self.allowlist):
            return True
        logger.warning("Blocked origin: %s", origin)
        return not self.enforce


class SlidingWindowRateLimiter:
    """Counts requests per key over a sliding time window."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: dict[str, deque[float]] = {}

    def _prune(self, key: str, now: float) -> deque[float]:
        hits = self._hits.setdefault(key, deque())
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()
        return hits

    def hit(self, key: str) -> bool:
        """Record a request. Returns False once the key is over its limit."""
        now = self.clock()
        hits = self._prune(key, now)
        if len(hits) >= self.limit:
            return False
        hits.append(now)
        self._evict_idle(now)
        return True

    def retry_after(self, key: str) -> int:
        """Seconds until the key may send another request."""
        now = self.clock()
        hits = self._prune(key, now)
        if len(hits) < self.limit:
            return 0
        return max(1, math.ceil(hits[0] + self.window_seconds - now))

    def _evict_idle(self, now: float) -> None:
        # Keeps memory bounded by active clients only
        if len(self._hits) < 1024:
            return
        for key in [k for k, v in self._hits.items() if not v or now - v[-1] >= self.window_seconds]:
            del self._hits[key]


class RateLimitMiddleware:
    """Applies a rate limiter to API routes, keyed by client address."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: SlidingWindowRateLimiter,
        prefix: str = "/api/",
        exempt: Iterable[str] = ("/api/health",),
    ):
        self.app = app
        self.limiter = limiter
        self.prefix = prefix
        self.exempt = frozenset(exempt)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path", "")
        if (
            scope["type"] != "http"
            or not path.startswith(self.prefix)
            or path in self.exempt
        ):
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        key = client[0] if client else "unknown"
        if not self.limiter.hit(key):
            logger.warning("Rate limit exceeded for %s", key)
            response = JSONResponse(
                {"error": RATE_LIMIT_MESSAGE},
                status_code=429,
                headers={"Retry-After": str(self.limiter.retry_after(key))},
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
