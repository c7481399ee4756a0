"""Main RailPlanner class."""

import logging
from datetime import datetime
from typing import List, Optional

from .catalog import load_reference_index
from .config import RailConfig
from .departure_board import DepartureBoard
from .models import (
    Departure,
    LineRef,
    PageResult,
    ScoredTravel,
    SearchResult,
    SortMode,
    Station,
    TransferInfo,
    Travel,
)
from .query_cache import QueryCache
from .rail_client import TimetableClient
from .reference import ReferenceIndex
from .window import WindowManager

logger = logging.getLogger(__name__)


class RailPlanner:
    """
    Query surface for searching and browsing rail trips.

    This class provides methods to:
    - Find stations by name or ID
    - Search trips between two stations around a time and page earlier/later
    - Re-order results by sort mode
    - Look up the lines serving a station and direct lines between stations
    - Show a departure board for a station
    """

    def __init__(
        self,
        config: Optional[RailConfig] = None,
        index: Optional[ReferenceIndex] = None,
        client: Optional[TimetableClient] = None,
    ):
        """
        Initialize the planner.

        Args:
            config: API and cache settings. Defaults to RailConfig.from_env().
            index: Reference index. Defaults to the bundled station and line data.
            client: Timetable client. Defaults to one built from config.
        """
        self.config = config or RailConfig.from_env()
        self.index = index or load_reference_index()
        self.client = client or TimetableClient(self.config)
        self.cache = QueryCache(
            self.client, ttl=self.config.cache_ttl, max_size=self.config.cache_max_size
        )
        self.routes = WindowManager(self.cache, self.index)
        self.board = DepartureBoard(self.cache, self.index)

    def get_station(self, station_input: str) -> Station:
        """
        Get a station by ID or name.

        Args:
            station_input: Either a station ID (e.g., "3700") or a name (e.g., "Savidor").

        Raises:
            ValueError: If station not found.
        """
        try:
            return self.index.get_station(station_input)
        except ValueError:
            pass

        stations = self.index.find_stations_by_name(station_input)
        if not stations:
            raise ValueError(f"No station found matching '{station_input}'")
        return stations[0]

    def find_stations_by_name(self, name: str) -> List[Station]:
        return self.index.find_stations_by_name(name)

    async def search(
        self,
        origin: str,
        destination: str,
        when: Optional[datetime] = None,
        sort_mode: Optional[SortMode] = None,
    ) -> SearchResult:
        """
        Search trips between two stations around a time (now by default).

        Returns:
            SearchResult with the visible trips, or an error message.
        """
        return await self.routes.new_search(origin, destination, when or datetime.now(), sort_mode)

    async def earlier(self) -> PageResult:
        return await self.routes.extend_earlier()

    async def later(self) -> PageResult:
        return await self.routes.extend_later()

    def set_sort_mode(self, mode: SortMode) -> List[ScoredTravel]:
        return self.routes.set_sort_mode(mode)

    def lines_serving(self, station_id: str) -> List[LineRef]:
        return self.index.lines_serving(station_id)

    def direct_lines_between(self, origin_id: str, dest_id: str) -> List[LineRef]:
        return self.index.direct_lines_between(origin_id, dest_id)

    def transfer_info(self, origin_id: str, dest_id: str) -> TransferInfo:
        return self.index.transfer_info(origin_id, dest_id)

    def annotate(self, travel: Travel) -> List[Optional[LineRef]]:
        """Catalogued line of each leg of a trip (None where unknown)."""
        return self.index.annotate_travel(travel)

    async def departures(self, station_input: str, when: Optional[datetime] = None) -> List[Departure]:
        """Departure board for a station given by ID or name."""
        station = self.get_station(station_input)
        return await self.board.load(station.station_id, when)

    async def earlier_departures(self) -> List[Departure]:
        return await self.board.load_earlier()

    async def later_departures(self) -> List[Departure]:
        return await self.board.load_later()

    def cleanup(self) -> None:
        """Release resources and clear caches."""
        self.cache.clear()
        self.client.close()
        logger.info("Cleaned up planner resources")
