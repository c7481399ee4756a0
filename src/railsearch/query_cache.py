"""Time-bucketed TTL cache in front of the timetable search."""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from .config import CACHE_MAX_SIZE, CACHE_TTL
from .models import ScheduleType
from .rail_client import TimetableClient, format_date

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, str, int]


class QueryCache:
    """
    Caches raw search responses per (origin, destination, date, hour).

    Minutes are dropped from the key, so two searches within the same hour
    share one entry. Entries older than the TTL count as absent even before
    they are pruned.
    """

    def __init__(
        self,
        client: TimetableClient,
        ttl: float = CACHE_TTL,
        max_size: int = CACHE_MAX_SIZE,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.client = client
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock or time.time
        self._cache: Dict[CacheKey, Tuple[Any, float]] = {}  # key -> (response, inserted_at)

    @staticmethod
    def make_key(origin: str, destination: str, when: datetime) -> CacheKey:
        return (str(origin), str(destination), format_date(when), when.hour)

    async def get(
        self,
        origin: str,
        destination: str,
        when: datetime,
        schedule_type: ScheduleType = ScheduleType.BY_DEPARTURE,
    ) -> Any:
        """
        Return the search response for a query, fetching it on miss or expiry.

        Errors from the client propagate unchanged and are never cached.
        """
        key = self.make_key(origin, destination, when)
        now = self._clock()

        cached = self._cache.get(key)
        if cached is not None:
            data, inserted_at = cached
            if now - inserted_at < self.ttl:
                logger.debug(f"Cache hit for {key}")
                return data

        logger.debug(f"Cache miss for {key}")
        data = await self.client.search_trains_async(origin, destination, when, schedule_type)
        self._cache[key] = (data, self._clock())
        self._prune()
        return data

    def _prune(self) -> None:
        """Drop expired entries, then the oldest ones until under max_size."""
        now = self._clock()
        expired_keys = [
            key for key, (_, inserted_at) in self._cache.items()
            if now - inserted_at >= self.ttl
        ]
        for key in expired_keys:
            del self._cache[key]

        overflow = max(0, len(self._cache) - self.max_size)
        oldest = sorted(self._cache, key=lambda k: self._cache[k][1])[:overflow]
        for key in oldest:
            del self._cache[key]

        if expired_keys or oldest:
            logger.debug(f"Evicted {len(expired_keys)} expired and {len(oldest)} oldest cache entries")

    def clear(self) -> None:
        """Manually clear the cache."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._cache
