"""Doctor presence backed only by the cache.

Presence has no durable copy. Writes require the cache and fail with
PresenceUnavailableError without it; reads never fail and report
`offline` whenever nothing can be read.

Expiry rules:
- available / busy expire after `ttl` seconds (default 30 minutes), so a
  doctor who goes quiet drifts back to offline
- offline is stored without expiry
"""

from __future__ import annotations

import logging

from clinicore.cache.redis import RedisCache
from clinicore.cache.result import CacheErr, CacheHit, CacheMiss
from clinicore.core.errors import InvalidStatusError, PresenceUnavailableError
from clinicore.core.models import PresenceStatus
from clinicore.events.notifier import EventNotifier
from clinicore.events.schemas import DOCTOR_STATUS_CHANGED, DoctorStatusEvent
from clinicore.observability.metrics import record_cache_error

logger = logging.getLogger(__name__)


def parse_presence(value: str | PresenceStatus) -> PresenceStatus:
    try:
        return PresenceStatus(value)
    except ValueError:
        raise InvalidStatusError(value, [s.value for s in PresenceStatus]) from None


class PresenceStore:
    """Per-doctor presence status with bounded lifetime."""

    def __init__(
        self,
        cache: RedisCache,
        notifier: EventNotifier,
        ttl: int = 1800,
        topic: str = DOCTOR_STATUS_CHANGED,
    ):
        self.cache = cache
        self.notifier = notifier
        self.ttl = ttl
        self.topic = topic

    async def set_status(
        self,
        doctor_id: int,
        status: str | PresenceStatus,
        doctor_name: str | None = None,
    ) -> DoctorStatusEvent:
        """Store a doctor's presence and publish the change.

        Raises:
            InvalidStatusError: status is not available/busy/offline
            PresenceUnavailableError: the cache is unavailable or rejected the write
        """
        presence = parse_presence(status)
        ttl = None if presence is PresenceStatus.OFFLINE else self.ttl

        result = await self.cache.set_presence(doctor_id, presence.value, ttl=ttl)
        if isinstance(result, CacheErr):
            record_cache_error("set")
            raise PresenceUnavailableError(f"Presence store unavailable: {result.error}")

        logger.info(f"Doctor {doctor_id} status updated to: {presence.value}")

        event = DoctorStatusEvent(doctor_id=doctor_id, doctor_name=doctor_name, status=presence)
        await self.notifier.publish(self.topic, event)
        return event

    async def get_status(self, doctor_id: int) -> PresenceStatus:
        """Current presence, `offline` if absent, expired or unreadable."""
        match await self.cache.get_presence(doctor_id):
            case CacheHit(value=raw):
                return self._decode(doctor_id, raw)
            case CacheMiss():
                return PresenceStatus.OFFLINE
            case CacheErr(error=error):
                logger.debug(f"Presence read failed for doctor {doctor_id}: {error}")
                record_cache_error("get")
                return PresenceStatus.OFFLINE
        return PresenceStatus.OFFLINE

    async def get_all_statuses(self, doctor_ids: list[int]) -> dict[int, PresenceStatus]:
        """Presence for each doctor, one lookup per id.

        Once the cache reports itself unavailable, the remaining doctors are
        reported offline without further lookups.
        """
        statuses = {doctor_id: PresenceStatus.OFFLINE for doctor_id in doctor_ids}
        if not self.cache.configured:
            return statuses

        for doctor_id in doctor_ids:
            result = await self.cache.get_presence(doctor_id)
            if isinstance(result, CacheHit):
                statuses[doctor_id] = self._decode(doctor_id, result.value)
            elif isinstance(result, CacheErr):
                record_cache_error("get")
                if result.unavailable:
                    logger.warning(
                        f"Cache unavailable, reporting remaining doctors offline: {result.error}"
                    )
                    break
        return statuses

    def _decode(self, doctor_id: int, raw: bytes | str) -> PresenceStatus:
        try:
            value = raw.decode() if isinstance(raw, bytes) else raw
            return PresenceStatus(value)
        except (UnicodeDecodeError, ValueError):
            logger.warning(f"Unknown presence value {raw!r} for doctor {doctor_id}")
            return PresenceStatus.OFFLINE
