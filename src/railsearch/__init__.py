"""RailSearch - ranked, browsable train trip search for Israel Railways."""

__version__ = "0.1.0"

from .models import (
    Departure,
    Leg,
    Line,
    LineRef,
    Metrics,
    PageResult,
    PageStatus,
    ScheduleType,
    ScoredTravel,
    SearchResult,
    SortMode,
    Station,
    Stop,
    TransferInfo,
    Travel,
    WindowPhase,
)
from .exceptions import RailSearchError, UpstreamError, ValidationError
from .config import RailConfig
from .rail_client import TimetableClient, parse_travels
from .query_cache import QueryCache
from .dedupe import dedupe_travels
from .scoring import score_travels, sort_travels, pick_recommended
from .reference import ReferenceIndex
from .catalog import load_reference_index
from .window import WindowManager
from .departure_board import DepartureBoard
from .planner import RailPlanner

__all__ = [
    "RailPlanner",
    "WindowManager",
    "DepartureBoard",
    "QueryCache",
    "TimetableClient",
    "ReferenceIndex",
    "RailConfig",
    "load_reference_index",
    "parse_travels",
    "dedupe_travels",
    "score_travels",
    "sort_travels",
    "pick_recommended",
    "RailSearchError",
    "UpstreamError",
    "ValidationError",
    "Departure",
    "Leg",
    "Line",
    "LineRef",
    "Metrics",
    "PageResult",
    "PageStatus",
    "ScheduleType",
    "ScoredTravel",
    "SearchResult",
    "SortMode",
    "Station",
    "Stop",
    "TransferInfo",
    "Travel",
    "WindowPhase",
]
