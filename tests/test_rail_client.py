"""Tests for the timetable client and response parsing."""

import asyncio
import threading
import unittest
from datetime import datetime
from unittest.mock import MagicMock, patch

import requests

from factories import direct, response, train, travel

from railsearch.config import RailConfig
from railsearch.exceptions import UpstreamError
from railsearch.models import ScheduleType
from railsearch.rail_client import (
    TimetableClient,
    duration_minutes,
    format_duration,
    parse_travels,
    to_time_str,
)


def _http_response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.text = text
    resp.json.return_value = payload
    return resp


class TestTimetableClient(unittest.TestCase):
    """Test requests sent to the search endpoint."""

    def setUp(self):
        self.session = MagicMock()
        self.config = RailConfig(api_base="https://rail.example/api", api_key="secret")
        self.client = TimetableClient(self.config, session=self.session)

    def test_search_posts_expected_body(self):
        """Test the request body and headers of a search."""
        self.session.post.return_value = _http_response(payload=response())

        self.client.search_trains("3700", "2100", datetime(2024, 1, 15, 8, 5))

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "https://rail.example/api/timetable/searchTrain")
        self.assertEqual(kwargs["json"], {
            "fromStation": "3700",
            "toStation": "2100",
            "date": "2024-01-15",
            "hour": "08:05",
            "scheduleType": "ByDeparture",
            "systemType": "2",
            "languageId": "Hebrew",
        })
        self.assertEqual(kwargs["headers"]["ocp-apim-subscription-key"], "secret")
        self.assertEqual(kwargs["timeout"], self.config.timeout)

    def test_search_by_arrival(self):
        self.session.post.return_value = _http_response(payload=response())
        self.client.search_trains("3700", "2100", datetime(2024, 1, 15, 8), ScheduleType.BY_ARRIVAL)
        self.assertEqual(self.session.post.call_args[1]["json"]["scheduleType"], "ByArrival")

    def test_non_success_raises_upstream_error(self):
        """Test that error responses carry status and detail."""
        self.session.post.return_value = _http_response(status=503, text="maintenance")

        with self.assertRaises(UpstreamError) as ctx:
            self.client.search_trains("3700", "2100", datetime(2024, 1, 15, 8))

        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(ctx.exception.detail, "maintenance")

    def test_transport_error_raises_upstream_error(self):
        self.session.post.side_effect = requests.ConnectionError("no route to host")

        with self.assertRaises(UpstreamError) as ctx:
            self.client.search_trains("3700", "2100", datetime(2024, 1, 15, 8))

        self.assertIsNone(ctx.exception.status)

    def test_invalid_json_raises_upstream_error(self):
        resp = _http_response()
        resp.json.side_effect = ValueError("Expecting value")
        self.session.post.return_value = resp

        with self.assertRaises(UpstreamError):
            self.client.search_trains("3700", "2100", datetime(2024, 1, 15, 8))

    def test_async_search_returns_payload(self):
        payload = response(direct(101, "08:00", "09:00"))
        self.session.post.return_value = _http_response(payload=payload)

        result = asyncio.run(
            self.client.search_trains_async("3700", "2100", datetime(2024, 1, 15, 8))
        )

        self.assertEqual(result, payload)


class TestSessions(unittest.TestCase):
    """Test that worker threads do not share a session."""

    def setUp(self):
        self.created = []

        def new_session():
            session = MagicMock()
            session.post.return_value = _http_response(payload=response())
            self.created.append(session)
            return session

        patcher = patch("railsearch.rail_client.requests.Session", side_effect=new_session)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TimetableClient(RailConfig(api_base="https://rail.example/api"))
        self.when = datetime(2024, 1, 15, 8)

    def test_one_session_per_thread(self):
        self.client.search_trains("3700", "2100", self.when)
        self.client.search_trains("3700", "2100", self.when)
        self.assertEqual(len(self.created), 1)

        workers = [
            threading.Thread(target=self.client.search_trains, args=("3700", "2100", self.when))
            for _ in range(2)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        self.assertEqual(len(self.created), 3)
        for session in self.created:
            self.assertGreaterEqual(session.post.call_count, 1)

    def test_close_closes_every_session(self):
        worker = threading.Thread(target=self.client.search_trains, args=("3700", "2100", self.when))
        worker.start()
        worker.join()
        self.client.search_trains("3700", "2100", self.when)

        self.client.close()

        self.assertEqual(len(self.created), 2)
        for session in self.created:
            session.close.assert_called_once()


class TestParseTravels(unittest.TestCase):
    """Test normalization of search responses."""

    def test_missing_result_yields_empty_list(self):
        self.assertEqual(parse_travels(None), [])
        self.assertEqual(parse_travels({}), [])
        self.assertEqual(parse_travels({"result": {}}), [])

    def test_parses_legs_and_stops(self):
        """Test that a two-leg trip is parsed with all leg fields."""
        payload = response(
            travel(
                "07:40", "09:10",
                train(201, 3700, 3100, "07:40", "08:20", load=40, route=[4900, 3700, 3100, 1600],
                      stops=[{"stationId": 3500, "arrivalTime": "2024-01-15T07:52:00",
                              "departureTime": "2024-01-15T07:53:00", "platform": 1,
                              "predictedPctLoad": 35}]),
                train(202, 3100, 2100, "08:35", "09:10"),
                messages=["Works on the coastal line"],
            )
        )

        travels = parse_travels(payload)

        self.assertEqual(len(travels), 1)
        trip = travels[0]
        self.assertTrue(trip.is_exchange)
        self.assertEqual(trip.departure_time, datetime(2024, 1, 15, 7, 40))
        self.assertEqual(trip.messages, ("Works on the coastal line",))

        first, second = trip.legs
        self.assertEqual(first.train_number, "201")
        self.assertEqual(first.origin_station, "3700")
        self.assertEqual(first.dest_station, "3100")
        self.assertEqual(first.crowding, 40)
        self.assertEqual(first.origin_platform, "1")
        self.assertEqual(first.terminal_origin, "4900")
        self.assertEqual(first.terminal_dest, "1600")
        self.assertEqual(first.stops[0].station_id, "3500")
        self.assertEqual(first.stops[0].crowding, 35)
        self.assertIsNone(second.crowding)
        self.assertIsNone(second.terminal_origin)
        self.assertEqual(second.stops, ())

    def test_malformed_records_raise_upstream_error(self):
        """Test that broken records surface as an upstream error, not a crash."""
        for payload in (
            {"result": {"travels": [None]}},
            {"result": {"travels": [{"trains": ["201"]}]}},
            {"result": ["not", "an", "object"]},
            response(travel("08:00", "09:00", train(1, 3700, 2100, "08:00", "09:00", stops=[7]))),
        ):
            with self.assertRaises(UpstreamError) as ctx:
                parse_travels(payload)
            self.assertEqual(ctx.exception.status, 200)

    def test_message_objects_are_flattened(self):
        payload = response(
            travel("08:00", "09:00", train(1, 3700, 2100, "08:00", "09:00"),
                   messages=[{"title": "Notice", "message": "Platform change"}])
        )
        self.assertEqual(parse_travels(payload)[0].messages, ("Notice Platform change",))


class TestFormatting(unittest.TestCase):

    def test_helpers(self):
        start = datetime(2024, 1, 15, 7, 40)
        end = datetime(2024, 1, 15, 9, 10)
        self.assertEqual(duration_minutes(start, end), 90)
        self.assertEqual(duration_minutes(None, end), 0)
        self.assertEqual(format_duration(90), "1:30")
        self.assertEqual(format_duration(5), "0:05")
        self.assertEqual(to_time_str(start), "07:40")
        self.assertEqual(to_time_str(None), "--:--")


if __name__ == "__main__":
    unittest.main()
