"""Decoders and analytics behind the norlys aurora tiles."""

from norlys_core.arrival import (
    L1_DISTANCE_KM,
    ArrivalEstimate,
    EstimationError,
    InvalidMeasurement,
    align_arrival,
    estimate_arrival,
)
from norlys_core.lys_index_pb import TelemetrySample, TelemetrySeries, decode_series
from norlys_core.map_matrix_pb import (
    GeoSample,
    GeoSnapshot,
    GeoSnapshotSet,
    decode_matrix_set,
    select_current,
)
from norlys_core.nearest import Coordinate, NearestSampleResult, locate_nearest
from norlys_core.wire_format import (
    DecodeError,
    MalformedMessage,
    MalformedVarint,
    Truncated,
    UnknownWireType,
)

__version__ = "0.1.0"
