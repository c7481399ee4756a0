"""Data models for the rail trip planner."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class SortMode(str, Enum):
    """Orderings offered for a list of scored trips."""
    RECOMMENDED = "RECOMMENDED"
    FASTEST = "FASTEST"
    FEWEST_TRANSFERS = "FEWEST_TRANSFERS"
    LEAST_CROWDED = "LEAST_CROWDED"


class ScheduleType(str, Enum):
    """Direction mode understood by the upstream search call."""
    BY_DEPARTURE = "ByDeparture"
    BY_ARRIVAL = "ByArrival"


class WindowPhase(str, Enum):
    IDLE = "IDLE"
    SEARCHING = "SEARCHING"
    READY = "READY"
    EXTENDING_EARLIER = "EXTENDING_EARLIER"
    EXTENDING_LATER = "EXTENDING_LATER"


class PageStatus(str, Enum):
    """Outcome of an extend-earlier / extend-later request."""
    EXTENDED = "EXTENDED"
    NO_NEW_DATA = "NO_NEW_DATA"
    SOFT_FAILURE = "SOFT_FAILURE"  # error suppressed, previous results kept
    STALE = "STALE"  # response belonged to a superseded search
    IN_FLIGHT = "IN_FLIGHT"  # same kind of request already running
    IDLE = "IDLE"  # nothing has been searched yet


@dataclass(frozen=True)
class Station:
    """A station from the static station table."""
    station_id: str
    names: Tuple[str, ...]  # Display names, preferred first

    @property
    def name(self) -> str:
        return self.names[0] if self.names else self.station_id


@dataclass(frozen=True)
class Line:
    """A catalogued line with its ordered station names."""
    line_id: str
    name: str
    color: str
    stations: Tuple[str, ...]


@dataclass(frozen=True)
class LineRef:
    """Identity of a line as attached to a station or a leg."""
    line_id: str
    name: str
    color: str


@dataclass(frozen=True)
class Stop:
    """An intermediate stop of a leg."""
    station_id: str
    arrival_time: Optional[datetime] = None
    departure_time: Optional[datetime] = None
    platform: Optional[str] = None
    crowding: Optional[float] = None


@dataclass(frozen=True)
class Leg:
    """One vehicle segment of a trip."""
    train_number: str
    origin_station: str
    dest_station: str
    departure_time: datetime
    arrival_time: datetime
    origin_platform: Optional[str] = None
    dest_platform: Optional[str] = None
    crowding: Optional[float] = None  # Predicted load percentage, 0-100
    handicap: Optional[bool] = None
    terminal_origin: Optional[str] = None  # First station of the train's route
    terminal_dest: Optional[str] = None  # Last station of the train's route
    stops: Tuple[Stop, ...] = ()
    route_stations: Tuple[Stop, ...] = ()


@dataclass(frozen=True)
class Travel:
    """A raw trip candidate as returned by the timetable search."""
    departure_time: datetime
    arrival_time: datetime
    legs: Tuple[Leg, ...]
    messages: Tuple[str, ...] = ()

    @property
    def is_exchange(self) -> bool:
        """True when the trip needs at least one transfer."""
        return len(self.legs) > 1


@dataclass(frozen=True)
class Metrics:
    """Comparable per-trip measurements."""
    duration: float  # minutes
    transfers: int
    crowding: float  # mean leg crowding, missing values count as 50
    wait_time: float  # minutes spent between legs


@dataclass(frozen=True)
class ScoredTravel:
    """A trip candidate with metrics and a batch-relative score (lower is better)."""
    travel: Travel
    metrics: Metrics
    score: float

    @property
    def departure_time(self) -> datetime:
        return self.travel.departure_time

    @property
    def arrival_time(self) -> datetime:
        return self.travel.arrival_time


@dataclass(frozen=True)
class TransferInfo:
    """Whether a one-seat ride exists between two stations."""
    has_direct: bool
    direct_lines: List[LineRef] = field(default_factory=list)


@dataclass
class SearchResult:
    """Outcome of a new search."""
    candidates: List[ScoredTravel]
    error: Optional[str] = None
    exception: Optional[Exception] = None
    notice: Optional[str] = None
    transfer_info: Optional[TransferInfo] = None
    recommended: Optional[ScoredTravel] = None
    superseded: bool = False


@dataclass
class PageResult:
    """Outcome of a pagination request; never carries a user-visible error."""
    status: PageStatus
    candidates: List[ScoredTravel]
    added: int = 0
    error: Optional[Exception] = None
    recommended: Optional[ScoredTravel] = None


@dataclass(frozen=True)
class Departure:
    """A row of a station departure board."""
    time: str  # HH:MM
    departure_time: datetime
    dest_station: str
    dest_name: str
    platform: Optional[str]
    train_number: str
    crowding: Optional[float]
    travel: Travel
