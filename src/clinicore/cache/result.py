"""Typed outcomes of cache operations.

RedisCache never raises for connectivity problems. Every call returns one of:

- CacheHit(value)   a GET found the key
- CacheMiss()       a GET found nothing
- CacheOk(applied)  a SET/DELETE ran; `applied` is False when a guarded
                    write was skipped or a delete found nothing
- CacheErr(error)   the cache is unavailable or the command failed

Callers match on these and apply their own degrade policy, e.g.:

    match await cache.get(key):
        case CacheHit(value=raw):
            ...
        case CacheMiss() | CacheErr():
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class CacheErrorKind(str, Enum):
    """Why a cache operation did not produce a value."""

    # No client configured, or the connection could not be established
    UNAVAILABLE = "unavailable"
    # The command timed out
    TIMEOUT = "timeout"
    # Redis answered with an error
    COMMAND = "command"


@dataclass(frozen=True, slots=True)
class CacheError:
    kind: CacheErrorKind
    operation: str
    message: str

    def __str__(self) -> str:
        return f"{self.operation}: {self.kind.value} ({self.message})"


@dataclass(frozen=True, slots=True)
class CacheHit(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class CacheMiss:
    pass


@dataclass(frozen=True, slots=True)
class CacheOk:
    applied: bool = True


@dataclass(frozen=True, slots=True)
class CacheErr:
    error: CacheError

    @property
    def unavailable(self) -> bool:
        return self.error.kind in (CacheErrorKind.UNAVAILABLE, CacheErrorKind.TIMEOUT)


GetResult = Union[CacheHit[bytes], CacheMiss, CacheErr]
WriteResult = Union[CacheOk, CacheErr]
