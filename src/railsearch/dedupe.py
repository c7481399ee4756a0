"""Collapse trip candidates that describe the same physical journey."""

from typing import Iterable, List, Tuple

from .models import Travel


def travel_key(travel: Travel) -> Tuple[str, str, str]:
    """Identity of a trip: departure, arrival and the ordered train numbers."""
    return (
        travel.departure_time.isoformat(),
        travel.arrival_time.isoformat(),
        ",".join(leg.train_number for leg in travel.legs),
    )


def dedupe_travels(travels: Iterable[Travel]) -> List[Travel]:
    """Remove duplicates, keeping the first occurrence and the original order."""
    seen = set()
    unique: List[Travel] = []
    for travel in travels:
        key = travel_key(travel)
        if key in seen:
            continue
        seen.add(key)
        unique.append(travel)
    return unique


def sort_by_departure(travels: Iterable[Travel]) -> List[Travel]:
    """Stable ascending sort on departure time."""
    return sorted(travels, key=lambda t: t.departure_time)
