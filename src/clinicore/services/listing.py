"""Cache-aside read path for a doctor's appointment listing.

    cache hit  -> return cached listing              (source=cache)
    cache miss -> query store -> populate -> return  (source=store)

The cache is optional: any cache failure is treated as a miss, and a failed
populate is logged and ignored. When the first read finds Redis unavailable
or timing out, the read goes straight to the store with no further cache
calls. A store failure degrades to an empty listing with an error message
instead of raising.

A populate is skipped when the listing was invalidated while the store query
was in flight (see RedisCache.set_listing), so a slow read can never put a
pre-update listing back after a write deleted it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import TypeAdapter, ValidationError

from clinicore.cache.redis import RedisCache
from clinicore.cache.result import CacheErr, CacheHit, CacheMiss, GetResult
from clinicore.core.errors import StoreError
from clinicore.core.models import Appointment
from clinicore.observability.metrics import (
    record_cache_error,
    record_cache_hit,
    record_cache_miss,
)
from clinicore.persistence.store import ClinicStore

logger = logging.getLogger(__name__)

_listing_adapter = TypeAdapter(list[Appointment])


class ListingSource(str, Enum):
    CACHE = "cache"
    STORE = "store"


@dataclass(frozen=True)
class ListingResult:
    appointments: list[Appointment]
    source: ListingSource
    error: str | None = None

    @property
    def from_cache(self) -> bool:
        return self.source is ListingSource.CACHE


def serialize_listing(appointments: list[Appointment]) -> bytes:
    return _listing_adapter.dump_json(appointments, by_alias=True)


def deserialize_listing(raw: bytes) -> list[Appointment]:
    return _listing_adapter.validate_json(raw)


class ListingService:
    """Serves appointment listings through the cache."""

    def __init__(self, cache: RedisCache, store: ClinicStore, ttl: int = 45):
        self.cache = cache
        self.store = store
        self.ttl = ttl

    async def get_listing(self, doctor_id: int) -> ListingResult:
        read = await self.cache.get_listing(doctor_id)
        cached = self._from_cache(doctor_id, read)
        if cached is not None:
            return ListingResult(appointments=cached, source=ListingSource.CACHE)

        # Snapshot the generation before the store query so an invalidation
        # that lands during the query makes the populate a no-op.
        generation: int | CacheErr
        if isinstance(read, CacheErr) and read.unavailable:
            generation = read
        else:
            generation = await self.cache.get_listing_generation(doctor_id)

        try:
            appointments = await self.store.list_appointments(doctor_id)
        except StoreError as e:
            logger.error(f"Listing query failed for doctor {doctor_id}: {e.__cause__ or e}")
            return ListingResult(
                appointments=[],
                source=ListingSource.STORE,
                error="Error loading appointments.",
            )

        if isinstance(generation, CacheErr):
            logger.debug(f"Skipping listing populate for doctor {doctor_id}: {generation.error}")
        else:
            await self._populate(doctor_id, appointments, generation)

        return ListingResult(appointments=appointments, source=ListingSource.STORE)

    def _from_cache(self, doctor_id: int, read: GetResult) -> list[Appointment] | None:
        match read:
            case CacheHit(value=raw):
                try:
                    appointments = deserialize_listing(raw)
                except ValidationError as e:
                    logger.warning(
                        f"Discarding unreadable cached listing for doctor {doctor_id}: {e}"
                    )
                    record_cache_miss("listing")
                    return None
                logger.info(f"Cache HIT: appointments for doctor {doctor_id}")
                record_cache_hit("listing")
                return appointments
            case CacheMiss():
                logger.info(f"Cache MISS: appointments for doctor {doctor_id}")
                record_cache_miss("listing")
                return None
            case CacheErr(error=error):
                logger.warning(f"Cache unavailable, reading from store: {error}")
                record_cache_error("get")
                return None
        return None

    async def _populate(
        self, doctor_id: int, appointments: list[Appointment], generation: int
    ) -> None:
        result = await self.cache.set_listing(
            doctor_id, serialize_listing(appointments), self.ttl, generation
        )
        if isinstance(result, CacheErr):
            logger.warning(f"Cache populate failed for doctor {doctor_id}: {result.error}")
            record_cache_error("set")
        elif result.applied:
            logger.info(f"Cached appointments for doctor {doctor_id} (expires in {self.ttl}s)")
        else:
            logger.info(f"Listing for doctor {doctor_id} invalidated during read, not cached")
