"""
Solar wind arrival time.

Conditions measured at L1 reach Earth after distance / speed. The upstream
series is shifted back by that travel time to find the sample that is
"arriving now", which the graph tiles mark with a vertical line.

All alignment is done on integer unix milliseconds; a datetime is only
built for the result.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from norlys_core.lys_index_pb import TelemetrySeries, datetime_to_ms, ms_to_datetime

logger = logging.getLogger(__name__)

# Sun-Earth L1 distance used by the tiles, in km.
L1_DISTANCE_KM = 1_500_000.0


class EstimationError(ValueError):
    pass


class InvalidMeasurement(EstimationError):
    """Speed or distance that cannot produce a finite travel time."""


@dataclass(frozen=True)
class ArrivalEstimate:
    travel_minutes: float
    aligned_index: Optional[int]
    arrival_timestamp: Optional[datetime]
    arrival_ms: Optional[int] = None

    @property
    def rounded_minutes(self) -> int:
        return int(round(self.travel_minutes))


def travel_minutes(speed_km_s: float, distance_km: float = L1_DISTANCE_KM) -> float:
    if not math.isfinite(speed_km_s) or speed_km_s <= 0:
        raise InvalidMeasurement(f"Speed must be a positive number of km/s, got {speed_km_s}")
    if not math.isfinite(distance_km) or distance_km <= 0:
        raise InvalidMeasurement(f"Distance must be a positive number of km, got {distance_km}")
    minutes = distance_km / speed_km_s / 60.0
    if not math.isfinite(minutes * 60_000):
        raise InvalidMeasurement(f"Speed {speed_km_s} km/s gives an unbounded travel time")
    return minutes


def align_arrival(
    timestamps_ms: Sequence[int],
    speed_km_s: float,
    distance_km: float = L1_DISTANCE_KM,
    reference_ms: Optional[int] = None,
) -> ArrivalEstimate:
    """
    Align the arrival time against a sequence of unix-millisecond timestamps.

    reference_ms defaults to the greatest timestamp. The returned index
    points into timestamps_ms; ties go to the first index. When the arrival
    instant falls outside the years datetime can represent,
    arrival_timestamp is None and arrival_ms still carries the value.
    """
    minutes = travel_minutes(speed_km_s, distance_km)

    if reference_ms is None:
        if not timestamps_ms:
            return ArrivalEstimate(minutes, None, None)
        reference_ms = max(timestamps_ms)

    arrival_ms = reference_ms - round(minutes * 60_000)

    # Linear scan: the timestamps are not guaranteed sorted.
    best_index = None
    best_delta = None
    for i, ts in enumerate(timestamps_ms):
        delta = abs(ts - arrival_ms)
        if best_delta is None or delta < best_delta:
            best_delta = delta
            best_index = i

    logger.debug(
        "Travel time %.1f min at %.0f km/s -> index %s", minutes, speed_km_s, best_index
    )
    return ArrivalEstimate(minutes, best_index, ms_to_datetime(arrival_ms), arrival_ms)


def estimate_arrival(
    series: TelemetrySeries,
    speed_km_s: float,
    distance_km: float = L1_DISTANCE_KM,
    reference: Optional[datetime] = None,
) -> ArrivalEstimate:
    """
    Estimate when the latest measured conditions arrive and align the
    arrival time to an index of series.

    Args:
        series: upstream samples, in any order.
        speed_km_s: solar wind speed. Must be > 0.
        distance_km: propagation distance, defaults to the L1 distance.
        reference: time of the measurement being propagated. Defaults to
            the timestamp of the latest sample in series. Naive datetimes
            are taken as UTC.

    Returns:
        ArrivalEstimate. aligned_index is None for an empty series;
        arrival_timestamp is None when there is neither a sample nor an
        explicit reference to count back from.

    Raises:
        InvalidMeasurement for non-positive or non-finite speed/distance.
    """
    reference_ms = None if reference is None else datetime_to_ms(reference)
    return align_arrival(
        [s.timestamp_ms for s in series], speed_km_s, distance_km, reference_ms
    )
