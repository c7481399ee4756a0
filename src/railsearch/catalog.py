"""Loaders for the static station table and line catalog."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from .models import Line, Station
from .reference import ReferenceIndex

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
STATIONS_PATH = DATA_DIR / "stations.csv"
LINES_PATH = DATA_DIR / "lines.json"

PathLike = Union[str, Path]


def load_stations(path: PathLike = STATIONS_PATH) -> List[Station]:
    """
    Parse a station table.

    The CSV needs a station_id column; every other column whose name starts
    with "name" is taken as a display name, in column order.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    if "station_id" not in df.columns:
        raise ValueError(f"{path}: missing station_id column")

    name_columns = [c for c in df.columns if c.startswith("name")]
    stations = []
    for record in df.to_dict("records"):
        names = tuple(record[c].strip() for c in name_columns if record[c].strip())
        stations.append(Station(station_id=record["station_id"].strip(), names=names))

    logger.info(f"Loaded {len(stations)} stations from {path}")
    return stations


def load_lines(path: PathLike = LINES_PATH) -> List[Line]:
    """Parse a line catalog: a JSON list of {id, name, color, stations}."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    lines = [
        Line(
            line_id=str(entry["id"]),
            name=entry["name"],
            color=entry.get("color", ""),
            stations=tuple(entry.get("stations", [])),
        )
        for entry in raw
    ]
    logger.info(f"Loaded {len(lines)} lines from {path}")
    return lines


def load_reference_index(
    stations_path: Optional[PathLike] = None, lines_path: Optional[PathLike] = None
) -> ReferenceIndex:
    """Build a ReferenceIndex from the bundled data or the given files."""
    return ReferenceIndex(
        load_stations(stations_path or STATIONS_PATH),
        load_lines(lines_path or LINES_PATH),
    )
