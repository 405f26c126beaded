"""Redis connection pool and the small set of commands the API uses.

Redis backs only the request rate limiter; listings and notifications live in
the database. Every helper raises RuntimeError while the pool is not set up so
callers can choose to run without it.
"""

from __future__ import annotations

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    """Create the shared client. Connections are opened lazily."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def incr_window(key: str, window_seconds: int) -> int:
    """Increment a fixed-window counter, returning the hit count so far in this window."""
    pipe = get_redis().pipeline()
    pipe.incr(key)
    pipe.expire(key, window_seconds + 1)
    count, _ = await pipe.execute()
    return int(count)


async def ping() -> bool:
    return bool(await get_redis().ping())
