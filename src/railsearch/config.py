"""Runtime configuration for the rail trip planner."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ValidationError

# Israel Railways timetable API
DEFAULT_API_BASE = "https://rail-api.rail.co.il/rjpa/api/v1"
SEARCH_ENDPOINT = "timetable/searchTrain"
SYSTEM_TYPE = "2"
DEFAULT_LANGUAGE = "Hebrew"
DEFAULT_TIMEOUT = 10  # seconds

CACHE_TTL = 5 * 60  # seconds
CACHE_MAX_SIZE = 50

# Hubs used as departure-board destinations for stations on no catalogued line
FALLBACK_HUBS = ("3700", "2100", "680", "7320", "5000")


@dataclass(frozen=True)
class RailConfig:
    """Settings for the timetable client and query cache."""
    api_base: str = DEFAULT_API_BASE
    api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    language: str = DEFAULT_LANGUAGE
    cache_ttl: float = CACHE_TTL
    cache_max_size: int = CACHE_MAX_SIZE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RailConfig":
        """
        Build a config from RAIL_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ (useful in tests).

        Raises:
            ValidationError: If a numeric setting cannot be parsed.
        """
        env = os.environ if environ is None else environ
        return cls(
            api_base=env.get("RAIL_API_BASE", DEFAULT_API_BASE).rstrip("/"),
            api_key=env.get("RAIL_API_KEY") or None,
            timeout=_number(env, "RAIL_API_TIMEOUT", DEFAULT_TIMEOUT, float),
            language=env.get("RAIL_LANGUAGE", DEFAULT_LANGUAGE),
            cache_ttl=_number(env, "RAIL_CACHE_TTL", CACHE_TTL, float),
            cache_max_size=_number(env, "RAIL_CACHE_MAX", CACHE_MAX_SIZE, int),
        )


def _number(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValidationError(f"{key} must be a number, got {raw!r}")
    if value <= 0:
        raise ValidationError(f"{key} must be positive, got {raw!r}")
    return value
