"""Redis cache implementation for clinicore.

Wraps the redis-py asyncio client so that every operation returns a typed
CacheResult instead of raising. A RedisCache built without a client (Redis
not configured) answers every call with CacheErr(UNAVAILABLE).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar, cast

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from clinicore.cache.keys import CacheKeys
from clinicore.cache.result import (
    CacheErr,
    CacheError,
    CacheErrorKind,
    CacheHit,
    CacheMiss,
    CacheOk,
    GetResult,
    WriteResult,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Writes the listing only if the generation counter still holds the value the
# reader saw before it queried the store.
# KEYS[1] listing key, KEYS[2] generation key
# ARGV[1] expected generation, ARGV[2] payload, ARGV[3] ttl seconds
_SET_IF_GENERATION = """
local current = redis.call('GET', KEYS[2])
if not current then current = '0' end
if current ~= ARGV[1] then return 0 end
redis.call('SET', KEYS[1], ARGV[2], 'EX', ARGV[3])
return 1
"""


def create_redis_client(url: str | None, socket_timeout: float = 2.0) -> Redis | None:
    """Create a Redis client, or None when Redis is not configured.

    The client connects lazily; an unreachable server surfaces as CacheErr
    results on first use rather than at construction.
    """
    if not url:
        logger.warning("Redis URL not configured, running without cache and broadcast")
        return None
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        decode_responses=False,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )


async def close_redis(client: Redis | None) -> None:
    """Close Redis connections."""
    if client is not None:
        await client.aclose()


class RedisCache:
    """Cache operations for appointment listings and doctor presence."""

    def __init__(self, client: Redis | None):
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def _execute(
        self, operation: str, command: Callable[[Redis], Awaitable[R]]
    ) -> R | CacheErr:
        """Run a command, converting Redis failures into CacheErr."""
        if self.client is None:
            return CacheErr(
                CacheError(CacheErrorKind.UNAVAILABLE, operation, "Redis is not configured")
            )
        try:
            return await command(self.client)
        except RedisTimeoutError as e:
            return CacheErr(CacheError(CacheErrorKind.TIMEOUT, operation, str(e)))
        except (RedisConnectionError, OSError) as e:
            return CacheErr(CacheError(CacheErrorKind.UNAVAILABLE, operation, str(e)))
        except RedisError as e:
            return CacheErr(CacheError(CacheErrorKind.COMMAND, operation, str(e)))

    # -------------------------------------------------------------------------
    # Generic operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> GetResult:
        result = await self._execute("get", lambda c: c.get(key))
        if isinstance(result, CacheErr):
            return result
        if result is None:
            return CacheMiss()
        return CacheHit(cast(bytes, result))

    async def set(self, key: str, value: bytes | str, ttl: int | None = None) -> WriteResult:
        """Store a value. `ttl=None` stores without expiry (and clears any old TTL)."""
        result = await self._execute("set", lambda c: c.set(key, value, ex=ttl))
        if isinstance(result, CacheErr):
            return result
        return CacheOk()

    async def delete(self, *keys: str) -> WriteResult:
        result = await self._execute("delete", lambda c: c.delete(*keys))
        if isinstance(result, CacheErr):
            return result
        return CacheOk(applied=bool(result))

    # -------------------------------------------------------------------------
    # Appointment listing
    # -------------------------------------------------------------------------

    async def get_listing(self, doctor_id: int) -> GetResult:
        """Get the cached listing bytes for a doctor."""
        return await self.get(CacheKeys.listing(doctor_id))

    async def get_listing_generation(self, doctor_id: int) -> int | CacheErr:
        """Read the listing generation counter (0 when never invalidated)."""
        result = await self.get(CacheKeys.listing_generation(doctor_id))
        if isinstance(result, CacheErr):
            return result
        if isinstance(result, CacheMiss):
            return 0
        try:
            return int(result.value)
        except ValueError:
            return CacheErr(
                CacheError(
                    CacheErrorKind.COMMAND,
                    "get_listing_generation",
                    f"generation is not an integer: {result.value!r}",
                )
            )

    async def set_listing(
        self, doctor_id: int, payload: bytes, ttl: int, generation: int
    ) -> WriteResult:
        """Populate the listing unless it was invalidated after `generation` was read.

        Returns CacheOk(applied=False) when the populate lost the race.
        """

        async def command(client: Redis) -> Any:
            return await client.eval(  # type: ignore[misc]
                _SET_IF_GENERATION,
                2,
                CacheKeys.listing(doctor_id),
                CacheKeys.listing_generation(doctor_id),
                str(generation),
                payload,
                str(ttl),
            )

        result = await self._execute("set_listing", command)
        if isinstance(result, CacheErr):
            return result
        return CacheOk(applied=int(result) == 1)

    async def invalidate_listing(self, doctor_id: int) -> WriteResult:
        """Bump the generation and delete the listing in one transaction."""

        async def command(client: Redis) -> list[Any]:
            async with client.pipeline(transaction=True) as pipe:
                pipe.incr(CacheKeys.listing_generation(doctor_id))
                pipe.delete(CacheKeys.listing(doctor_id))
                return cast(list[Any], await pipe.execute())

        result = await self._execute("invalidate_listing", command)
        if isinstance(result, CacheErr):
            return result
        _generation, deleted = result
        return CacheOk(applied=bool(deleted))

    # -------------------------------------------------------------------------
    # Presence
    # -------------------------------------------------------------------------

    async def get_presence(self, doctor_id: int) -> GetResult:
        return await self.get(CacheKeys.presence(doctor_id))

    async def set_presence(self, doctor_id: int, value: str, ttl: int | None) -> WriteResult:
        return await self.set(CacheKeys.presence(doctor_id), value, ttl=ttl)

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        result = await self._execute("ping", lambda c: cast(Awaitable[bool], c.ping()))
        return result is True
