"""Trip metrics, batch-relative scoring and sort modes."""

from typing import List, Optional, Sequence

from .models import Metrics, ScoredTravel, SortMode, Travel

WEIGHTS = {
    "duration": 0.4,
    "transfers": 0.3,
    "crowding": 0.2,
    "wait_time": 0.1,
}

DEFAULT_CROWDING = 50  # Assumed load when the API gives no prediction

_SORT_KEYS = {
    SortMode.FASTEST: lambda s: (s.metrics.duration, s.departure_time),
    SortMode.FEWEST_TRANSFERS: lambda s: (s.metrics.transfers, s.departure_time),
    SortMode.LEAST_CROWDED: lambda s: (s.metrics.crowding, s.departure_time),
    SortMode.RECOMMENDED: lambda s: s.departure_time,
}


def compute_metrics(travel: Travel) -> Metrics:
    """Measure a single trip."""
    duration = (travel.arrival_time - travel.departure_time).total_seconds() / 60
    transfers = max(0, len(travel.legs) - 1)

    loads = [DEFAULT_CROWDING if leg.crowding is None else leg.crowding for leg in travel.legs]
    crowding = sum(loads) / len(loads) if loads else DEFAULT_CROWDING

    wait_time = 0.0
    for previous, following in zip(travel.legs, travel.legs[1:]):
        gap = (following.departure_time - previous.arrival_time).total_seconds() / 60
        wait_time += max(0.0, gap)

    return Metrics(duration=duration, transfers=transfers, crowding=crowding, wait_time=wait_time)


def min_max_normalize(values: Sequence[float]) -> List[float]:
    """Scale values to [0, 1]; a batch of equal values maps to all zeros."""
    if not values:
        return []
    low, high = min(values), max(values)
    if high == low:
        return [0.0 for _ in values]
    return [(v - low) / (high - low) for v in values]


def score_travels(travels: Sequence[Travel]) -> List[ScoredTravel]:
    """
    Score a batch of raw trips.

    Scores are only comparable within the batch; any change to the batch
    requires scoring it again from raw trips.
    """
    if not travels:
        return []

    metrics = [compute_metrics(t) for t in travels]
    durations = min_max_normalize([m.duration for m in metrics])
    transfers = min_max_normalize([m.transfers for m in metrics])
    crowding = min_max_normalize([m.crowding for m in metrics])
    waits = min_max_normalize([m.wait_time for m in metrics])

    return [
        ScoredTravel(
            travel=travel,
            metrics=metrics[i],
            score=(
                durations[i] * WEIGHTS["duration"]
                + transfers[i] * WEIGHTS["transfers"]
                + crowding[i] * WEIGHTS["crowding"]
                + waits[i] * WEIGHTS["wait_time"]
            ),
        )
        for i, travel in enumerate(travels)
    ]


def sort_travels(scored: Sequence[ScoredTravel], mode: SortMode = SortMode.RECOMMENDED) -> List[ScoredTravel]:
    """
    Order scored trips for display.

    RECOMMENDED is chronological; the composite score only picks the badge
    (see pick_recommended).
    """
    return sorted(scored, key=_SORT_KEYS[SortMode(mode)])


def pick_recommended(scored: Sequence[ScoredTravel]) -> Optional[ScoredTravel]:
    """The lowest-scoring trip of the batch (first one on ties)."""
    if not scored:
        return None
    return min(scored, key=lambda s: s.score)
