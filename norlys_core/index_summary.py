"""Windowed current value / trend for the Lys index and RTSW tiles."""

import enum
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from norlys_core.lys_index_pb import TelemetrySample, TelemetrySeries, datetime_to_ms

HOUR_MS = 3_600_000


class LatitudeZone(enum.Enum):
    HIGH = "high"
    MID = "mid"

    def value_of(self, sample: TelemetrySample) -> int:
        return sample.high_value if self is LatitudeZone.HIGH else sample.mid_value

    def stations_of(self, sample: TelemetrySample) -> int:
        if self is LatitudeZone.HIGH:
            return sample.high_station_count
        return sample.mid_station_count


@dataclass(frozen=True)
class ValueTrend:
    current_value: float
    trend: float


def value_trend(values: Iterable[Optional[float]]) -> Optional[ValueTrend]:
    """Last value and last minus first, skipping missing values. None if empty."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return ValueTrend(current_value=present[-1], trend=present[-1] - present[0])


@dataclass(frozen=True)
class IndexSummary:
    current_value: float
    trend: float
    station_count: int
    points: tuple  # (timestamp_ms, value) pairs, oldest first


def window_start_ms(window_hours: float, now: Optional[datetime] = None) -> int:
    if not math.isfinite(window_hours) or window_hours <= 0:
        raise ValueError(f"window_hours must be positive, got {window_hours}")
    if now is None:
        now = datetime.now(timezone.utc)
    return datetime_to_ms(now) - round(window_hours * HOUR_MS)


def summarize_series(
    series: TelemetrySeries,
    zone: LatitudeZone = LatitudeZone.HIGH,
    window_hours: float = 6.0,
    now: Optional[datetime] = None,
) -> Optional[IndexSummary]:
    """
    Summarize the last window_hours of series for one latitude zone.

    Returns None when no sample falls inside the window, which the tiles
    show as "no data" rather than an error. The station count comes from
    the newest sample by timestamp.
    """
    start_ms = window_start_ms(window_hours, now)
    ordered = sorted(series, key=lambda s: s.timestamp_ms)
    recent = [s for s in ordered if s.timestamp_ms >= start_ms]
    if not recent:
        return None

    points = tuple((s.timestamp_ms, float(zone.value_of(s))) for s in recent)
    summary = value_trend(v for _, v in points)
    return IndexSummary(
        current_value=summary.current_value,
        trend=summary.trend,
        station_count=zone.stations_of(series.latest()),
        points=points,
    )
