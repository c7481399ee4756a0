"""Tests for RailPlanner and configuration."""

import asyncio
import unittest

from factories import FakeClient, at, direct, make_index, response

from railsearch.config import CACHE_MAX_SIZE, DEFAULT_API_BASE, RailConfig
from railsearch.exceptions import ValidationError
from railsearch.models import PageStatus, SortMode
from railsearch.planner import RailPlanner


def timetable(origin, dest, when):
    if when.hour == 6:
        return response(direct(101, "06:30", "07:30"), direct(102, "07:20", "08:20"))
    if when.hour == 8:
        base = 100 if dest == "2100" else int(dest)
        return response(direct(base + 3, "08:15", "09:05", dest=dest), direct(base + 4, "08:45", "09:45", dest=dest))
    return response()


class TestRailConfig(unittest.TestCase):

    def test_defaults(self):
        config = RailConfig.from_env({})
        self.assertEqual(config.api_base, DEFAULT_API_BASE)
        self.assertIsNone(config.api_key)
        self.assertEqual(config.cache_ttl, 300)
        self.assertEqual(config.cache_max_size, CACHE_MAX_SIZE)

    def test_overrides(self):
        config = RailConfig.from_env({
            "RAIL_API_BASE": "https://proxy.example/api/",
            "RAIL_API_KEY": "k",
            "RAIL_CACHE_TTL": "60",
            "RAIL_CACHE_MAX": "5",
        })
        self.assertEqual(config.api_base, "https://proxy.example/api")
        self.assertEqual(config.api_key, "k")
        self.assertEqual(config.cache_ttl, 60.0)
        self.assertEqual(config.cache_max_size, 5)

    def test_invalid_number(self):
        with self.assertRaises(ValidationError):
            RailConfig.from_env({"RAIL_CACHE_MAX": "lots"})
        with self.assertRaises(ValidationError):
            RailConfig.from_env({"RAIL_API_TIMEOUT": "-1"})


class TestRailPlanner(unittest.TestCase):
    """Test the query surface end to end with a fake upstream."""

    def setUp(self):
        self.client = FakeClient(timetable)
        self.planner = RailPlanner(
            config=RailConfig(cache_max_size=10), index=make_index(), client=self.client
        )

    def test_get_station_by_id_or_name(self):
        self.assertEqual(self.planner.get_station("2100").station_id, "2100")
        self.assertEqual(self.planner.get_station("Hadera").station_id, "3100")
        with self.assertRaises(ValueError):
            self.planner.get_station("NONEXISTENT")

    def test_cache_uses_config(self):
        self.assertEqual(self.planner.cache.max_size, 10)

    def test_search_page_and_sort(self):
        result = asyncio.run(self.planner.search("3700", "2100", at(8, 0), SortMode.FASTEST))

        self.assertEqual([s.travel.legs[0].train_number for s in result.candidates], ["103", "101", "102", "104"])

        page = asyncio.run(self.planner.later())
        self.assertEqual(page.status, PageStatus.NO_NEW_DATA)

        ordered = self.planner.set_sort_mode(SortMode.RECOMMENDED)
        departures = [s.departure_time for s in ordered]
        self.assertEqual(departures, sorted(departures))

    def test_line_lookups(self):
        self.assertTrue(self.planner.transfer_info("3700", "2100").has_direct)
        self.assertEqual([r.line_id for r in self.planner.lines_serving("3700")], ["coastal", "jerusalem"])
        self.assertEqual(self.planner.direct_lines_between("680", "1600"), [])

        result = asyncio.run(self.planner.search("3700", "2100", at(8, 0)))
        labels = self.planner.annotate(result.candidates[0].travel)
        self.assertEqual([ref.line_id for ref in labels], ["coastal"])

    def test_departures_by_name(self):
        rows = asyncio.run(self.planner.departures("Savidor", at(8, 0)))
        self.assertEqual({r.dest_station for r in rows}, {"1600", "680"})

    def test_cleanup(self):
        asyncio.run(self.planner.search("3700", "2100", at(8, 0)))
        self.planner.cleanup()
        self.assertEqual(len(self.planner.cache), 0)
        self.assertTrue(self.client.closed)


if __name__ == "__main__":
    unittest.main()
