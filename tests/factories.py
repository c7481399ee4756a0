"""Builders for upstream payloads and a fake timetable client used across tests."""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add src to path so we can import railsearch
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from railsearch.models import Line, Station
from railsearch.reference import ReferenceIndex


def iso(hhmm: str, day: str = "2024-01-15") -> str:
    return f"{day}T{hhmm}:00"


def train(number, origin, dest, dep, arr, load=None, route=None, stops=None):
    """One entry of travel["trains"] in the upstream format."""
    payload = {
        "trainNumber": number,
        "orignStation": origin,
        "destinationStation": dest,
        "departureTime": iso(dep),
        "arrivalTime": iso(arr),
        "originPlatform": 1,
        "destPlatform": 2,
        "predictedPctLoad": load,
        "handicap": True,
    }
    if route is not None:
        payload["routeStations"] = [{"stationId": s} for s in route]
    if stops is not None:
        payload["stopStations"] = stops
    return payload


def travel(dep, arr, *trains, messages=None):
    return {
        "departureTime": iso(dep),
        "arrivalTime": iso(arr),
        "travelMessages": messages or [],
        "trains": list(trains),
    }


def response(*travels):
    return {"result": {"travels": list(travels)}}


def direct(number, dep, arr, load=None, origin=3700, dest=2100):
    return travel(dep, arr, train(number, origin, dest, dep, arr, load))


class FakeClient:
    """Stands in for TimetableClient; answers through a responder callable."""

    def __init__(self, responder):
        self.responder = responder
        self.calls = []
        self.gates = {}  # (origin, dest, hour) -> asyncio.Event
        self.closed = False

    async def search_trains_async(self, origin, dest, when, schedule_type=None):
        self.calls.append((str(origin), str(dest), when))
        gate = self.gates.get((str(origin), str(dest), when.hour))
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        result = self.responder(str(origin), str(dest), when)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


def fixed(payload):
    return lambda origin, dest, when: payload


def at(hour, minute=0):
    return datetime(2024, 1, 15, hour, minute)


STATIONS = [
    Station("3700", ("Tel Aviv - Savidor Center",)),
    Station("3100", ("Hadera - West",)),
    Station("2100", ("Haifa Center - HaShmona",)),
    Station("1600", ("Nahariya",)),
    Station("680", ("Jerusalem - Yitzhak Navon",)),
    Station("8600", ("Ben Gurion Airport",)),
    Station("1840", ("Karmiel",)),
]

LINES = [
    Line("coastal", "Coastal", "#1565C0",
         ("Nahariya", "Haifa Center - HaShmona", "Hadera - West", "Tel Aviv - Savidor Center")),
    Line("jerusalem", "Jerusalem", "#2E7D32",
         ("Tel Aviv - Savidor Center", "Unknown Halt", "Ben Gurion Airport", "Jerusalem - Yitzhak Navon")),
    Line("north", "North", "#C62828",
         ("Haifa Center - HaShmona", "Nahariya")),
]


def make_index():
    return ReferenceIndex(STATIONS, LINES)
