"""Exceptions raised by the rail trip planner."""

from typing import Optional


class RailSearchError(Exception):
    """Base class for all planner errors."""


class UpstreamError(RailSearchError):
    """The timetable search call failed or returned a non-success response."""

    def __init__(self, status: Optional[int], detail: str = ""):
        self.status = status
        self.detail = detail
        if status is None:
            message = f"Timetable API unreachable: {detail}"
        else:
            message = f"Timetable API error {status}: {detail}"
        super().__init__(message)


class ValidationError(RailSearchError, ValueError):
    """Request rejected locally before any network call."""
