"""Nearest map sample to an observer, by great-circle distance."""

import math
from dataclasses import dataclass
from typing import Optional

from norlys_core.map_matrix_pb import GeoSample, GeoSnapshot

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float


@dataclass(frozen=True)
class NearestSampleResult:
    sample: GeoSample
    distance_km: float


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.sin(d_lon / 2) ** 2 * math.cos(lat1) * math.cos(lat2)
    )
    # Clamp: rounding can push h a hair above 1 for antipodal points.
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def locate_nearest(
    snapshot: GeoSnapshot, observer: Coordinate
) -> Optional[NearestSampleResult]:
    """Closest sample to observer; first listed wins ties. None if empty."""
    best = None
    best_dist = math.inf
    for sample in snapshot.samples:
        d = haversine_km(observer, Coordinate(sample.lat, sample.lon))
        if d < best_dist:
            best_dist = d
            best = sample
    if best is None:
        return None
    return NearestSampleResult(best, best_dist)
