"""Departure board for a single station."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .exceptions import RailSearchError
from .models import Departure, Travel
from .query_cache import QueryCache
from .rail_client import parse_travels, to_time_str
from .reference import ReferenceIndex

logger = logging.getLogger(__name__)

BOARD_PAGE_STEP = timedelta(hours=2)


class DepartureBoard:
    """
    Lists upcoming departures from a station.

    One search is issued per reachable line terminal. Each search settles on
    its own; failed ones are left out of the board.
    """

    def __init__(self, cache: QueryCache, index: ReferenceIndex):
        self.cache = cache
        self.index = index
        self.station_id: Optional[str] = None
        self._departures: Dict[str, Departure] = {}
        self._generation = 0

    @property
    def departures(self) -> List[Departure]:
        """Board rows sorted by departure time."""
        return sorted(self._departures.values(), key=lambda d: d.departure_time)

    async def load(self, station_id: str, when: Optional[datetime] = None) -> List[Departure]:
        """
        Replace the board with departures from station_id around when.

        Args:
            station_id: Station to list departures for.
            when: Search time; defaults to now.
        """
        self.station_id = str(station_id)
        self._departures = {}
        self._generation += 1
        when = when or datetime.now()
        logger.info(f"Loading departures for {self.station_id} at {when:%Y-%m-%d %H:%M}")

        board = await self._fetch(when, self._generation)
        if not board:
            logger.info(f"No departures found for {self.station_id}")
        return board

    async def load_earlier(self) -> List[Departure]:
        """Merge departures from two hours before the earliest listed one."""
        rows = self.departures
        if not rows:
            return rows
        return await self._fetch(rows[0].departure_time - BOARD_PAGE_STEP, self._generation)

    async def load_later(self) -> List[Departure]:
        """Merge departures from two hours after the latest listed one."""
        rows = self.departures
        if not rows:
            return rows
        return await self._fetch(rows[-1].departure_time + BOARD_PAGE_STEP, self._generation)

    async def _fetch(self, when: datetime, generation: int) -> List[Departure]:
        station_id = self.station_id
        destinations = self.index.dynamic_destinations(station_id)
        results = await asyncio.gather(
            *(self.cache.get(station_id, dest, when) for dest in destinations),
            return_exceptions=True,
        )

        if generation != self._generation:
            logger.debug(f"Discarding departures for superseded board {generation}")
            return self.departures

        for dest, result in zip(destinations, results):
            if isinstance(result, BaseException):
                logger.warning(f"Departures {station_id} -> {dest} unavailable: {result}")
                continue
            try:
                travels = parse_travels(result)
            except RailSearchError as e:
                logger.warning(f"Unreadable response for {station_id} -> {dest}: {e}")
                continue
            for travel in travels:
                self._add(travel)

        return self.departures

    def _add(self, travel: Travel) -> None:
        if not travel.legs:
            return
        first, last = travel.legs[0], travel.legs[-1]
        key = f"{first.train_number}-{first.departure_time.isoformat()}"
        if key in self._departures:
            return
        self._departures[key] = Departure(
            time=to_time_str(first.departure_time),
            departure_time=first.departure_time,
            dest_station=last.dest_station,
            dest_name=self.index.station_name(last.dest_station),
            platform=first.origin_platform,
            train_number=first.train_number,
            crowding=first.crowding,
            travel=travel,
        )
