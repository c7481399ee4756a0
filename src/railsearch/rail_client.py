"""Israel Railways timetable search client and response parser."""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from .config import RailConfig, SEARCH_ENDPOINT, SYSTEM_TYPE
from .exceptions import UpstreamError
from .models import Leg, ScheduleType, Stop, Travel

logger = logging.getLogger(__name__)


def format_date(when: datetime) -> str:
    """Format a datetime as YYYY-MM-DD."""
    return when.strftime("%Y-%m-%d")


def format_time(when: datetime) -> str:
    """Format a datetime as HH:MM."""
    return when.strftime("%H:%M")


def to_time_str(when: Optional[datetime]) -> str:
    """HH:MM for display, or "--:--" when the time is unknown."""
    if when is None:
        return "--:--"
    return format_time(when)


def duration_minutes(start: Optional[datetime], end: Optional[datetime]) -> int:
    """Whole minutes between two datetimes (0 if either is missing)."""
    if start is None or end is None:
        return 0
    return round((end - start).total_seconds() / 60)


def format_duration(minutes: int) -> str:
    """Format a minute count as H:MM."""
    hours, mins = divmod(minutes, 60)
    return f"{hours}:{mins:02d}"


class TimetableClient:
    """
    Issues timetable searches against the upstream API.

    search_trains_async runs searches on executor threads, several at a time.
    Without an injected session every worker thread gets its own
    requests.Session, since sessions are not safe to share across threads.
    """

    def __init__(self, config: Optional[RailConfig] = None, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            config: API settings. Defaults to RailConfig.from_env().
            session: Optional requests session shared by all calls. The caller
                is responsible for it being usable from several threads.
        """
        self.config = config or RailConfig.from_env()
        self._session = session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """The session for the calling thread."""
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    @property
    def search_url(self) -> str:
        return f"{self.config.api_base}/{SEARCH_ENDPOINT}"

    def build_request(
        self,
        from_station: str,
        to_station: str,
        when: datetime,
        schedule_type: ScheduleType = ScheduleType.BY_DEPARTURE,
    ) -> Dict[str, str]:
        """Build the JSON body of a search request."""
        return {
            "fromStation": str(from_station),
            "toStation": str(to_station),
            "date": format_date(when),
            "hour": format_time(when),
            "scheduleType": ScheduleType(schedule_type).value,
            "systemType": SYSTEM_TYPE,
            "languageId": self.config.language,
        }

    def search_trains(
        self,
        from_station: str,
        to_station: str,
        when: datetime,
        schedule_type: ScheduleType = ScheduleType.BY_DEPARTURE,
    ) -> Dict[str, Any]:
        """
        Search trains between two stations around a given time.

        Args:
            from_station: Origin station ID (e.g., "3700").
            to_station: Destination station ID (e.g., "2100").
            when: Date and time of the search.
            schedule_type: Search by departure or by arrival.

        Returns:
            The decoded JSON response.

        Raises:
            UpstreamError: On transport failure, non-success status or invalid JSON.
        """
        body = self.build_request(from_station, to_station, when, schedule_type)
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["ocp-apim-subscription-key"] = self.config.api_key

        logger.debug(f"Searching {from_station} -> {to_station} at {body['date']} {body['hour']}")
        try:
            response = self.session.post(
                self.search_url, json=body, headers=headers, timeout=self.config.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Timetable request failed: {e}")
            raise UpstreamError(None, str(e)) from e

        if not response.ok:
            logger.error(f"Timetable API returned {response.status_code}")
            raise UpstreamError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(response.status_code, f"Invalid JSON: {e}") from e

    async def search_trains_async(
        self,
        from_station: str,
        to_station: str,
        when: datetime,
        schedule_type: ScheduleType = ScheduleType.BY_DEPARTURE,
    ) -> Dict[str, Any]:
        """Run search_trains in the default executor so the event loop stays free."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self.search_trains, from_station, to_station, when, schedule_type
        )

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()


def parse_travels(api_response: Optional[Dict[str, Any]]) -> List[Travel]:
    """
    Normalize a search response into a flat list of trips.

    A response without result.travels yields an empty list.

    Raises:
        UpstreamError: If the response or one of its records is malformed.
    """
    try:
        result = (api_response or {}).get("result") or {}
        travels = result.get("travels") or []
        return [_parse_travel(travel) for travel in travels]
    except (AttributeError, TypeError) as e:
        logger.error(f"Malformed timetable response: {e}")
        raise UpstreamError(200, f"Malformed travel record: {e}") from e


def _parse_travel(travel: Dict[str, Any]) -> Travel:
    if not isinstance(travel, dict):
        raise TypeError(f"expected an object, got {type(travel).__name__}")
    legs = tuple(_parse_leg(train) for train in travel.get("trains") or [])
    return Travel(
        departure_time=_parse_time(travel.get("departureTime")),
        arrival_time=_parse_time(travel.get("arrivalTime")),
        legs=legs,
        messages=tuple(_message_text(m) for m in travel.get("travelMessages") or []),
    )


def _parse_leg(train: Dict[str, Any]) -> Leg:
    if not isinstance(train, dict):
        raise TypeError(f"expected a train object, got {type(train).__name__}")
    route = [_parse_stop(rs) for rs in train.get("routeStations") or []]
    return Leg(
        train_number=str(train.get("trainNumber")),
        # "orignStation" is the upstream spelling
        origin_station=str(train.get("orignStation")),
        dest_station=str(train.get("destinationStation")),
        departure_time=_parse_time(train.get("departureTime")),
        arrival_time=_parse_time(train.get("arrivalTime")),
        origin_platform=_optional_str(train.get("originPlatform")),
        dest_platform=_optional_str(train.get("destPlatform")),
        crowding=train.get("predictedPctLoad"),
        handicap=train.get("handicap"),
        terminal_origin=route[0].station_id if route else None,
        terminal_dest=route[-1].station_id if route else None,
        stops=tuple(_parse_stop(stop) for stop in train.get("stopStations") or []),
        route_stations=tuple(route),
    )


def _parse_stop(stop: Dict[str, Any]) -> Stop:
    return Stop(
        station_id=str(stop.get("stationId")),
        arrival_time=_parse_optional_time(stop.get("arrivalTime")),
        departure_time=_parse_optional_time(stop.get("departureTime")),
        platform=_optional_str(stop.get("platform")),
        crowding=stop.get("predictedPctLoad"),
    )


def _parse_time(value: Optional[str]) -> datetime:
    parsed = _parse_optional_time(value)
    if parsed is None:
        raise UpstreamError(200, f"Missing or invalid timestamp: {value!r}")
    return parsed


def _parse_optional_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _message_text(message: Any) -> str:
    # Advisory messages come either as plain strings or as {"title", "message"} objects
    if isinstance(message, dict):
        parts = [message.get("title"), message.get("message")]
        return " ".join(str(p) for p in parts if p).strip()
    return str(message)
