"""
NOAA real-time solar wind (RTSW) plasma and magnetic field tables.

Both 6-hour feeds are JSON arrays of string rows with a header first:

    plasma: [["time_tag", "speed", "density", "temperature", "quality", "source", "active"],
             ["2025-03-11 10:06:00.000", "512.3", "4.1", "120000", ...], ...]
    mag:    [["time_tag", "bt", "bx_gsm", "by_gsm", "bz_gsm", "lat_gsm", "lon_gsm",
              "quality", "source", "active"],
             ["2025-03-11 10:06:00.000", "6.2", "-1.0", "3.3", "-4.8", ...], ...]

Only the columns the tiles need are kept. Rows are not filtered on the
quality/active columns.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from norlys_core.lys_index_pb import datetime_to_ms

_TIME_FORMATS = ("%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M:%S")

Table = Union[str, bytes, Sequence[Sequence[str]]]


class SolarWindError(ValueError):
    pass


@dataclass(frozen=True)
class PlasmaReading:
    time_tag: datetime
    speed: Optional[float]
    density: Optional[float]
    temperature: Optional[float]

    @property
    def timestamp_ms(self) -> int:
        return datetime_to_ms(self.time_tag)


@dataclass(frozen=True)
class MagReading:
    time_tag: datetime
    bt: Optional[float]
    bz: Optional[float]

    @property
    def timestamp_ms(self) -> int:
        return datetime_to_ms(self.time_tag)


def _parse_time(text: str) -> datetime:
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except (TypeError, ValueError):
            continue
    raise SolarWindError(f"Bad time tag {text!r}")


def _parse_float(cell) -> Optional[float]:
    if cell is None:
        return None
    try:
        return float(cell)
    except (TypeError, ValueError):
        return None


def _data_rows(data: Table, min_columns: int, feed: str) -> list:
    """Load the table, drop the header row and check every row's width."""
    if isinstance(data, (str, bytes, bytearray)):
        try:
            rows = json.loads(data)
        except ValueError as e:
            raise SolarWindError(f"{feed} feed is not valid JSON: {e}") from e
    else:
        rows = data

    if not isinstance(rows, list):
        raise SolarWindError(f"{feed} feed must be a JSON array of rows")

    body = rows[1:]
    for row in body:
        if not isinstance(row, (list, tuple)) or len(row) < min_columns:
            raise SolarWindError(f"Unexpected {feed} row: {row!r}")
    return body


def parse_plasma_table(data: Table) -> list[PlasmaReading]:
    """Parse the plasma feed (raw JSON text or already-loaded rows)."""
    return [
        PlasmaReading(
            time_tag=_parse_time(row[0]),
            speed=_parse_float(row[1]),
            density=_parse_float(row[2]),
            temperature=_parse_float(row[3]),
        )
        for row in _data_rows(data, 4, "Plasma")
    ]


def parse_mag_table(data: Table) -> list[MagReading]:
    """Parse the magnetic field feed. Bt is column 1, Bz (GSM) column 4."""
    return [
        MagReading(
            time_tag=_parse_time(row[0]),
            bt=_parse_float(row[1]),
            bz=_parse_float(row[4]),
        )
        for row in _data_rows(data, 5, "Mag")
    ]


def by_time(readings: Sequence) -> list:
    """Readings oldest first; equal time tags keep feed order."""
    return sorted(readings, key=lambda r: r.time_tag)


def latest_speed(readings: Sequence[PlasmaReading]) -> Optional[float]:
    """Speed of the last row in the feed, None if absent or empty."""
    if not readings:
        return None
    return readings[-1].speed
