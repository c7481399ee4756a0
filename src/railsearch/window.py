"""Windowed, re-scored trip browsing around a pivot time."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from .dedupe import dedupe_travels, sort_by_departure
from .exceptions import RailSearchError, ValidationError
from .models import (
    PageResult,
    PageStatus,
    ScoredTravel,
    SearchResult,
    SortMode,
    Travel,
    WindowPhase,
)
from .query_cache import QueryCache
from .rail_client import parse_travels
from .reference import ReferenceIndex
from .scoring import pick_recommended, score_travels, sort_travels

logger = logging.getLogger(__name__)

INITIAL_LOOKBACK = timedelta(hours=2)
PAGE_STEP = timedelta(hours=1)
PAGE_SIZE = 2  # Trips added on each side of the pivot / per page


def select_around_pivot(pool: Sequence[Travel], pivot: datetime, per_side: int = PAGE_SIZE) -> List[Travel]:
    """
    From a departure-sorted pool, take the per_side closest trips before the
    pivot and the per_side closest at or after it.
    """
    before = [t for t in pool if t.departure_time < pivot]
    after = [t for t in pool if t.departure_time >= pivot]
    return before[-per_side:] + after[:per_side]


class WindowManager:
    """
    Owns the candidate pool and visible window of the active route search.

    The pool only grows until the next new_search. Every change to the
    visible set is scored again from raw trips, since scores are relative to
    the batch. A generation counter tags each search so that pagination
    responses that arrive after a newer search are discarded.
    """

    def __init__(
        self,
        cache: QueryCache,
        index: Optional[ReferenceIndex] = None,
        sort_mode: SortMode = SortMode.RECOMMENDED,
    ):
        self.cache = cache
        self.index = index
        self.sort_mode = SortMode(sort_mode)

        self._generation = 0
        self._phase = WindowPhase.IDLE
        self._origin: Optional[str] = None
        self._destination: Optional[str] = None
        self._pool: List[Travel] = []
        self._visible: List[Travel] = []
        self._scored: List[ScoredTravel] = []
        self._sorted: List[ScoredTravel] = []
        self._earliest: Optional[datetime] = None
        self._latest: Optional[datetime] = None
        self._extending_earlier = False
        self._extending_later = False

    @property
    def phase(self) -> WindowPhase:
        return self._phase

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pool(self) -> Tuple[Travel, ...]:
        return tuple(self._pool)

    @property
    def window(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        """(earliest, latest) departure boundaries of the visible slice."""
        return self._earliest, self._latest

    @property
    def candidates(self) -> List[ScoredTravel]:
        """Visible trips in the current sort order."""
        return list(self._sorted)

    @property
    def recommended(self) -> Optional[ScoredTravel]:
        """The badged trip; only the RECOMMENDED sort mode shows one."""
        if self.sort_mode != SortMode.RECOMMENDED:
            return None
        return pick_recommended(self._scored)

    def _reset(self, origin: Optional[str], destination: Optional[str]) -> int:
        self._generation += 1
        self._phase = WindowPhase.SEARCHING
        self._origin = origin
        self._destination = destination
        self._pool = []
        self._visible = []
        self._scored = []
        self._sorted = []
        self._earliest = None
        self._latest = None
        self._extending_earlier = False
        self._extending_later = False
        return self._generation

    def _rescore(self) -> None:
        self._scored = score_travels(self._visible)
        self._sorted = sort_travels(self._scored, self.sort_mode)

    def _settle_phase(self) -> None:
        if self._extending_earlier:
            self._phase = WindowPhase.EXTENDING_EARLIER
        elif self._extending_later:
            self._phase = WindowPhase.EXTENDING_LATER
        else:
            self._phase = WindowPhase.READY

    @staticmethod
    def _validate(origin: Optional[str], destination: Optional[str]) -> None:
        if not origin or not destination:
            raise ValidationError("Choose both an origin and a destination station")
        if str(origin) == str(destination):
            raise ValidationError("Origin and destination stations are the same")

    async def new_search(
        self,
        origin: str,
        destination: str,
        pivot: datetime,
        sort_mode: Optional[SortMode] = None,
    ) -> SearchResult:
        """
        Start a search centered on pivot, discarding any previous one.

        Queries pivot - 2h and pivot concurrently; both must succeed. The
        visible window is the two closest trips on either side of the pivot.
        Failures come back as SearchResult.error with an empty result set.
        """
        if sort_mode is not None:
            self.sort_mode = SortMode(sort_mode)
        generation = self._reset(origin, destination)

        try:
            self._validate(origin, destination)
            logger.info(f"Searching {origin} -> {destination} around {pivot:%Y-%m-%d %H:%M}")
            before, at = await asyncio.gather(
                self.cache.get(origin, destination, pivot - INITIAL_LOOKBACK),
                self.cache.get(origin, destination, pivot),
            )
            travels = parse_travels(before) + parse_travels(at)
        except RailSearchError as e:
            if generation != self._generation:
                return SearchResult(candidates=[], superseded=True)
            logger.error(f"Search {origin} -> {destination} failed: {e}")
            self._reset(None, None)
            self._phase = WindowPhase.IDLE
            return SearchResult(candidates=[], error=f"Search failed: {e}", exception=e)

        if generation != self._generation:
            logger.debug(f"Discarding results of superseded search {generation}")
            return SearchResult(candidates=[], superseded=True)

        self._pool = sort_by_departure(dedupe_travels(travels))
        self._visible = select_around_pivot(self._pool, pivot)
        if self._visible:
            self._earliest = self._visible[0].departure_time
            self._latest = self._visible[-1].departure_time
        else:
            self._earliest = self._latest = pivot
        self._rescore()
        self._phase = WindowPhase.READY

        transfer_info = self.index.transfer_info(origin, destination) if self.index else None
        notice = None
        if not self._visible:
            notice = "No trips found for the requested time. Try another time."

        return SearchResult(
            candidates=self.candidates,
            notice=notice,
            transfer_info=transfer_info,
            recommended=self.recommended,
        )

    async def extend_earlier(self) -> PageResult:
        """Add up to two trips departing before the current window."""
        return await self._extend(earlier=True)

    async def extend_later(self) -> PageResult:
        """Add up to two trips departing after the current window."""
        return await self._extend(earlier=False)

    async def _extend(self, earlier: bool) -> PageResult:
        if self._phase in (WindowPhase.IDLE, WindowPhase.SEARCHING) or self._earliest is None:
            return self._page(PageStatus.IDLE)

        in_flight = self._extending_earlier if earlier else self._extending_later
        if in_flight:
            return self._page(PageStatus.IN_FLIGHT)

        generation = self._generation
        boundary = self._earliest if earlier else self._latest
        query_time = boundary - PAGE_STEP if earlier else boundary + PAGE_STEP
        self._set_in_flight(earlier, True)

        try:
            response = await self.cache.get(self._origin, self._destination, query_time)
            fetched = parse_travels(response)
        except Exception as e:
            if generation != self._generation:
                return self._page(PageStatus.STALE)
            logger.warning(f"Loading {'earlier' if earlier else 'later'} trips failed: {e}")
            return self._page(PageStatus.SOFT_FAILURE, error=e)
        finally:
            if generation == self._generation:
                self._set_in_flight(earlier, False)

        if generation != self._generation:
            logger.debug(f"Discarding page for superseded search {generation}")
            return self._page(PageStatus.STALE)

        if earlier:
            merged = fetched + self._pool
        else:
            merged = self._pool + fetched
        self._pool = sort_by_departure(dedupe_travels(merged))

        if earlier:
            boundary = self._earliest
            page = [t for t in self._pool if t.departure_time < boundary][-PAGE_SIZE:]
        else:
            boundary = self._latest
            page = [t for t in self._pool if t.departure_time > boundary][:PAGE_SIZE]

        if not page:
            return self._page(PageStatus.NO_NEW_DATA)

        if earlier:
            self._visible = dedupe_travels(page + self._visible)
            self._earliest = page[0].departure_time
        else:
            self._visible = dedupe_travels(self._visible + page)
            self._latest = page[-1].departure_time
        self._rescore()

        return self._page(PageStatus.EXTENDED, added=len(page))

    def _page(self, status: PageStatus, added: int = 0, error: Optional[Exception] = None) -> PageResult:
        # Every outcome carries the current window, so a page that adds nothing leaves it intact
        return PageResult(
            status=status,
            candidates=self.candidates,
            added=added,
            error=error,
            recommended=self.recommended,
        )

    def _set_in_flight(self, earlier: bool, value: bool) -> None:
        if earlier:
            self._extending_earlier = value
        else:
            self._extending_later = value
        self._settle_phase()

    def set_sort_mode(self, mode: SortMode) -> List[ScoredTravel]:
        """Re-order the visible trips without any network call."""
        self.sort_mode = SortMode(mode)
        self._sorted = sort_travels(self._scored, self.sort_mode)
        return self.candidates
