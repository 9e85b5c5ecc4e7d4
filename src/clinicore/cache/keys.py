"""Cache key schema for clinicore.

Key formats:
- appointments:{doctor_id}       cached appointment listing (JSON array)
- appointments:{doctor_id}:gen   listing generation counter, bumped on invalidation
- doctor:status:{doctor_id}      presence value (available | busy | offline)
"""

from __future__ import annotations


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    LISTING_PREFIX = "appointments"
    PRESENCE_PREFIX = "doctor:status"

    @classmethod
    def listing(cls, doctor_id: int) -> str:
        """Key for a doctor's cached appointment listing."""
        return f"{cls.LISTING_PREFIX}:{doctor_id}"

    @classmethod
    def listing_generation(cls, doctor_id: int) -> str:
        """Key for the listing generation counter.

        Populates compare against this value so a read that started before
        an invalidation cannot write its stale result back.
        """
        return f"{cls.LISTING_PREFIX}:{doctor_id}:gen"

    @classmethod
    def presence(cls, doctor_id: int) -> str:
        """Key for a doctor's presence status."""
        return f"{cls.PRESENCE_PREFIX}:{doctor_id}"

