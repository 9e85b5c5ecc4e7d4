"""Cache layer for clinicore.

Provides Redis caching with the cache-aside pattern:
- Appointment listings cached per doctor with a short TTL
- Explicit invalidation on every status change, guarded by a generation
  counter so a slow read cannot resurrect a deleted entry
- Presence values with their own expiry rules
- Typed results: a missing or broken Redis never raises to the caller
"""

from clinicore.cache.keys import CacheKeys
from clinicore.cache.redis import RedisCache, close_redis, create_redis_client
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

__all__ = [
    "CacheKeys",
    "RedisCache",
    "create_redis_client",
    "close_redis",
    "CacheErr",
    "CacheError",
    "CacheErrorKind",
    "CacheHit",
    "CacheMiss",
    "CacheOk",
    "GetResult",
    "WriteResult",
]
