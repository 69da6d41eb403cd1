"""
One refresh pass per tile: fetch, decode, analyze.

Each reader performs its requests, hands the bytes to the pure decoders
and returns the scalars a tile renders. Failures are logged and re-raised;
deciding when to retry is left to whoever schedules the refresh.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from norlys_core.arrival import ArrivalEstimate, InvalidMeasurement, align_arrival
from norlys_core.client import fetch_bytes
from norlys_core.config import Settings
from norlys_core.index_summary import (
    IndexSummary,
    LatitudeZone,
    ValueTrend,
    summarize_series,
    value_trend,
)
from norlys_core.lys_index_pb import decode_series
from norlys_core.map_matrix_pb import decode_matrix_set, select_current
from norlys_core.nearest import Coordinate, NearestSampleResult, locate_nearest
from norlys_core.solar_wind import (
    SolarWindError,
    by_time,
    latest_speed,
    parse_mag_table,
    parse_plasma_table,
)
from norlys_core.wire_format import DecodeError

logger = logging.getLogger(__name__)


def read_index_tile(
    settings: Settings,
    zone: LatitudeZone = LatitudeZone.HIGH,
    now: Optional[datetime] = None,
) -> Optional[IndexSummary]:
    """Lys index summary for zone, or None when the feed has no recent data."""
    body = fetch_bytes(settings.lys_index_url, settings.http_timeout)
    try:
        series = decode_series(body)
    except DecodeError as e:
        logger.error("Lys index decode error: %s", e)
        raise

    summary = summarize_series(series, zone, settings.window_hours, now)
    if summary is None:
        logger.info(
            "No Lys index data in the last %.0fh (%d samples total)",
            settings.window_hours,
            len(series),
        )
    else:
        logger.info(
            "Lys %s: %.0f (trend %+.1f, %d stations)",
            zone.value,
            summary.current_value,
            summary.trend,
            summary.station_count,
        )
    return summary


def read_position_tile(
    settings: Settings, observer: Optional[Coordinate] = None
) -> Optional[NearestSampleResult]:
    """Nearest sample of the newest map snapshot, or None without data."""
    if observer is None:
        observer = settings.observer

    body = fetch_bytes(settings.map_url, settings.http_timeout)
    try:
        snapshot_set = decode_matrix_set(body)
    except DecodeError as e:
        logger.error("Map matrices decode error: %s", e)
        raise

    current = select_current(snapshot_set)
    if current is None or not current.samples:
        logger.info("No map data available (%d snapshots)", len(snapshot_set))
        return None

    result = locate_nearest(current, observer)
    if result is None:
        logger.info("No usable map points in snapshot %d", current.timestamp_ms)
        return None
    logger.info(
        "Nearest of %d points to (%.3f, %.3f): score %.1f at %.0f km",
        len(current.samples),
        observer.lat,
        observer.lon,
        result.sample.score,
        result.distance_km,
    )
    return result


@dataclass(frozen=True)
class SolarWindTile:
    """Values behind the RTSW tiles. Any part is None when its feed is empty."""

    bt: Optional[ValueTrend]
    bz: Optional[ValueTrend]
    speed: Optional[ValueTrend]
    density: Optional[ValueTrend]
    arrival: Optional[ArrivalEstimate]
    mag_points: tuple  # (timestamp_ms, bt, bz), oldest first


def read_solar_wind_tile(settings: Settings) -> SolarWindTile:
    """
    Bt/Bz and speed/density with their trends, plus the arrival estimate
    of the latest plasma speed aligned on the magnetic field series.

    arrival is None when the plasma feed carries no usable speed.
    """
    mag_body = fetch_bytes(settings.mag_url, settings.http_timeout)
    plasma_body = fetch_bytes(settings.plasma_url, settings.http_timeout)
    try:
        mag = by_time(parse_mag_table(mag_body))
        plasma_rows = parse_plasma_table(plasma_body)
    except SolarWindError as e:
        logger.error("RTSW feed parse error: %s", e)
        raise
    plasma = by_time(plasma_rows)

    arrival = None
    speed = latest_speed(plasma_rows)
    if speed is None:
        logger.info("No solar wind speed in plasma feed (%d rows)", len(plasma_rows))
    else:
        try:
            arrival = align_arrival(
                [r.timestamp_ms for r in mag], speed, settings.propagation_distance_km
            )
        except InvalidMeasurement as e:
            logger.warning("No arrival estimate: %s", e)
        else:
            logger.info(
                "Solar wind %.0f km/s: arrival in %d min, mag index %s of %d",
                speed,
                arrival.rounded_minutes,
                arrival.aligned_index,
                len(mag),
            )

    return SolarWindTile(
        bt=value_trend(r.bt for r in mag),
        bz=value_trend(r.bz for r in mag),
        speed=value_trend(r.speed for r in plasma),
        density=value_trend(r.density for r in plasma),
        arrival=arrival,
        mag_points=tuple((r.timestamp_ms, r.bt, r.bz) for r in mag),
    )
