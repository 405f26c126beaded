"""Per-client request throttling backed by Redis fixed-window counters.

Reads and writes are counted separately: browsing is cheap and generous,
creating listings and sending interest notices share a tighter budget.
"""

from __future__ import annotations

import time
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from tcgp.redis_client import incr_window

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})
_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Return 429 once a client exceeds its budget for the current window."""

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        writes_per_window: int = 30,
        window_seconds: int = 60,
    ) -> None:
        super().__init__(app)
        self.limits = {"read": requests_per_window, "write": writes_per_window}
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        bucket = "write" if request.method in _WRITE_METHODS else "read"
        limit = self.limits[bucket]
        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time()) // self.window_seconds

        try:
            count = await incr_window(f"ratelimit:{bucket}:{client_ip}:{window}", self.window_seconds)
        except RuntimeError:
            # Redis not initialized; run unthrottled.
            return await call_next(request)
        except RedisError as e:
            logger.warning("rate_limit_backend_unavailable", error=str(e))
            return await call_next(request)

        if count > limit:
            logger.warning("rate_limited", client_ip=client_ip, bucket=bucket, count=count)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Try again later.", "field": None},
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        return response
