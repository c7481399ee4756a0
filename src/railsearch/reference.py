"""Station-to-line index and line annotations for trips."""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import FALLBACK_HUBS
from .models import Leg, Line, LineRef, Station, TransferInfo, Travel

logger = logging.getLogger(__name__)


class ReferenceIndex:
    """
    Read-only index of stations and the lines serving them.

    Built once from a station table and a line catalog. Line station
    sequences refer to stations by display name; names that match no
    station are skipped.
    """

    def __init__(self, stations: Iterable[Station], lines: Iterable[Line]):
        station_map: Dict[str, Station] = {}
        by_name: Dict[str, Station] = {}
        for station in stations:
            station_map[station.station_id] = station
            for name in station.names:
                by_name.setdefault(name, station)

        line_map: Dict[str, Line] = {}
        serving: Dict[str, List[LineRef]] = {}
        skipped = 0
        for line in lines:
            line_map[line.line_id] = line
            ref = LineRef(line_id=line.line_id, name=line.name, color=line.color)
            for station_name in line.stations:
                station = by_name.get(station_name)
                if station is None:
                    skipped += 1
                    continue
                refs = serving.setdefault(station.station_id, [])
                if ref not in refs:
                    refs.append(ref)

        self._stations = MappingProxyType(station_map)
        self._by_name = MappingProxyType(by_name)
        self._lines = MappingProxyType(line_map)
        self._serving: "MappingProxyType[str, Tuple[LineRef, ...]]" = MappingProxyType(
            {station_id: tuple(refs) for station_id, refs in serving.items()}
        )
        logger.debug(
            f"Indexed {len(self._stations)} stations on {len(self._lines)} lines "
            f"({skipped} unmatched station names)"
        )

    @property
    def stations(self):
        return self._stations

    @property
    def lines(self):
        return self._lines

    def get_station(self, station_id: str) -> Station:
        """Get station by ID."""
        station_id = str(station_id)
        if station_id not in self._stations:
            raise ValueError(f"Station {station_id} not found")
        return self._stations[station_id]

    def station_name(self, station_id: str) -> str:
        """Display name of a station, or a generic label for unknown IDs."""
        station = self._stations.get(str(station_id))
        return station.name if station else f"Station {station_id}"

    def find_stations_by_name(self, name: str) -> List[Station]:
        """Find stations whose display names contain name (case-insensitive)."""
        needle = name.lower()
        return [
            station for station in self._stations.values()
            if any(needle in n.lower() for n in station.names)
        ]

    def get_line(self, line_id: str) -> Line:
        if line_id not in self._lines:
            raise ValueError(f"Line {line_id} not found")
        return self._lines[line_id]

    def lines_serving(self, station_id: str) -> List[LineRef]:
        """Lines calling at a station, in catalog order."""
        return list(self._serving.get(str(station_id), ()))

    def direct_lines_between(self, origin_id: str, dest_id: str) -> List[LineRef]:
        """Lines that call at both stations (empty when a transfer is needed)."""
        dest_line_ids = {ref.line_id for ref in self.lines_serving(dest_id)}
        return [ref for ref in self.lines_serving(origin_id) if ref.line_id in dest_line_ids]

    def transfer_info(self, origin_id: str, dest_id: str) -> TransferInfo:
        direct = self.direct_lines_between(origin_id, dest_id)
        return TransferInfo(has_direct=bool(direct), direct_lines=direct)

    def annotate_leg(self, leg: Leg) -> Optional[LineRef]:
        """
        The first line serving both ends of a leg, or None.

        None means the leg does not match a single catalogued line segment.
        """
        direct = self.direct_lines_between(leg.origin_station, leg.dest_station)
        return direct[0] if direct else None

    def annotate_travel(self, travel: Travel) -> List[Optional[LineRef]]:
        """Line of each leg of a trip, in leg order."""
        return [self.annotate_leg(leg) for leg in travel.legs]

    def dynamic_destinations(
        self, origin_id: str, fallback: Sequence[str] = FALLBACK_HUBS
    ) -> List[str]:
        """
        Terminal stations of every line serving a station.

        Stations on no catalogued line get the fallback hubs instead. The
        station itself is never included.
        """
        origin_id = str(origin_id)
        destinations: List[str] = []
        for ref in self.lines_serving(origin_id):
            line = self._lines.get(ref.line_id)
            if line is None or not line.stations:
                continue
            for terminal_name in (line.stations[0], line.stations[-1]):
                terminal = self._by_name.get(terminal_name)
                if terminal and terminal.station_id != origin_id and terminal.station_id not in destinations:
                    destinations.append(terminal.station_id)

        if not destinations:
            destinations = [hub for hub in fallback if hub != origin_id]
        return destinations
