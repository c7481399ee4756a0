"""Example usage of RailPlanner."""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add src to path so we can import railsearch
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from railsearch import PageStatus, RailPlanner, SortMode
from railsearch.rail_client import format_duration, to_time_str

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_trips(planner: RailPlanner, trips, recommended=None):
    for trip in trips:
        badge = " *recommended*" if recommended is not None and trip is recommended else ""
        lines = planner.annotate(trip.travel)
        line_names = ", ".join(ref.name if ref else "?" for ref in lines)
        print(
            f"  {to_time_str(trip.departure_time)} -> {to_time_str(trip.arrival_time)}"
            f"  {format_duration(round(trip.metrics.duration))}"
            f"  transfers: {trip.metrics.transfers}"
            f"  load: {trip.metrics.crowding:.0f}%"
            f"  [{line_names}]{badge}"
        )


async def run(origin_input: str, dest_input: str, when: datetime, mode: SortMode):
    """
    Search trips between two stations and page one step each way.

    Args:
        origin_input: Origin name or ID (e.g., "Savidor" or "3700")
        dest_input: Destination name or ID (e.g., "HaShmona" or "2100")
        when: Pivot time of the search
        mode: Sort mode for the listing
    """
    planner = RailPlanner()
    try:
        origin = planner.get_station(origin_input)
        dest = planner.get_station(dest_input)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"\n{'='*70}")
    print(f"{origin.name} -> {dest.name} around {when:%Y-%m-%d %H:%M} ({mode.value})")
    print(f"{'='*70}\n")

    try:
        result = await planner.search(origin.station_id, dest.station_id, when, mode)
        if result.error:
            print(f"Error: {result.error}")
            sys.exit(1)
        if result.notice:
            print(result.notice)

        if result.transfer_info and result.transfer_info.has_direct:
            names = ", ".join(ref.name for ref in result.transfer_info.direct_lines)
            print(f"Direct lines: {names}\n")
        else:
            print("No direct line, a transfer is needed\n")

        print_trips(planner, result.candidates, result.recommended)

        for label, page in (("EARLIER", planner.earlier), ("LATER", planner.later)):
            page_result = await page()
            print(f"\n{label}: {page_result.status.value} (+{page_result.added})")
            if page_result.status == PageStatus.EXTENDED:
                print_trips(planner, page_result.candidates, page_result.recommended)
    finally:
        planner.cleanup()


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: example.py ORIGIN DESTINATION [YYYY-MM-DDTHH:MM] [SORT_MODE]")
        sys.exit(1)

    pivot = datetime.fromisoformat(sys.argv[3]) if len(sys.argv) > 3 else datetime.now()
    sort_mode = SortMode(sys.argv[4].upper()) if len(sys.argv) > 4 else SortMode.RECOMMENDED
    asyncio.run(run(sys.argv[1], sys.argv[2], pivot, sort_mode))
