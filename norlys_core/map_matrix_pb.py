"""
Protobuf decoder for the aurora probability map feed.

Matches the proto3 schema:
    message MapMatrices {
        message MapMatrix {
            message MapPoint {
                double lat = 1;
                double lon = 2;
                double score = 3;
                double speed = 4;
            }
            int64 timestamp = 1;     // unix milliseconds
            repeated MapPoint matrix = 2;
        }
        repeated MapMatrix matrices = 1;
    }
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from norlys_core.wire_format import (
    WIRE_FIXED64,
    WIRE_LENGTH_DELIMITED,
    WIRE_VARINT,
    Buffer,
    FieldRule,
    as_double,
    decode_fields,
    encode_double,
    encode_length_delimited,
    encode_varint_field,
    to_int64,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoSample:
    lat: float = 0.0
    lon: float = 0.0
    score: float = 0.0
    speed: float = 0.0


@dataclass(frozen=True)
class GeoSnapshot:
    timestamp_ms: int = 0
    samples: tuple = ()


@dataclass(frozen=True)
class GeoSnapshotSet:
    snapshots: tuple = ()

    def __len__(self) -> int:
        return len(self.snapshots)

    def __iter__(self) -> Iterator[GeoSnapshot]:
        return iter(self.snapshots)

    def current(self) -> Optional[GeoSnapshot]:
        return select_current(self)


_SAMPLE_FIELDS = {
    1: FieldRule("lat", WIRE_FIXED64, as_double),
    2: FieldRule("lon", WIRE_FIXED64, as_double),
    3: FieldRule("score", WIRE_FIXED64, as_double),
    4: FieldRule("speed", WIRE_FIXED64, as_double),
}


def _decode_sample(buf: Buffer) -> GeoSample:
    return GeoSample(**decode_fields(buf, _SAMPLE_FIELDS))


_SNAPSHOT_FIELDS = {
    1: FieldRule("timestamp_ms", WIRE_VARINT, to_int64),
    2: FieldRule("samples", WIRE_LENGTH_DELIMITED, _decode_sample, repeated=True),
}


def _decode_snapshot(buf: Buffer) -> GeoSnapshot:
    fields = decode_fields(buf, _SNAPSHOT_FIELDS)
    return GeoSnapshot(
        timestamp_ms=fields.get("timestamp_ms", 0),
        samples=tuple(fields.get("samples", ())),
    )


_SET_FIELDS = {
    1: FieldRule("snapshots", WIRE_LENGTH_DELIMITED, _decode_snapshot, repeated=True),
}


def decode_matrix_set(buf: Buffer) -> GeoSnapshotSet:
    """Decode a MapMatrices message. An empty buffer is an empty set."""
    fields = decode_fields(buf, _SET_FIELDS)
    snapshot_set = GeoSnapshotSet(snapshots=tuple(fields.get("snapshots", ())))
    logger.debug(
        "Decoded %d map snapshots from %d bytes", len(snapshot_set), len(buf)
    )
    return snapshot_set


def select_current(snapshot_set: GeoSnapshotSet) -> Optional[GeoSnapshot]:
    """
    The snapshot with the greatest timestamp, regardless of wire order.

    Equal timestamps resolve to the one decoded first. None when the set
    is empty.
    """
    if not snapshot_set.snapshots:
        return None
    return max(snapshot_set.snapshots, key=lambda s: s.timestamp_ms)


def encode_snapshot(snapshot: GeoSnapshot) -> bytes:
    parts = [encode_varint_field(1, snapshot.timestamp_ms)]
    for sample in snapshot.samples:
        point = b"".join(
            [
                encode_double(1, sample.lat),
                encode_double(2, sample.lon),
                encode_double(3, sample.score),
                encode_double(4, sample.speed),
            ]
        )
        parts.append(encode_length_delimited(2, point))
    return b"".join(parts)


def encode_matrix_set(snapshot_set: GeoSnapshotSet) -> bytes:
    return b"".join(
        encode_length_delimited(1, encode_snapshot(s)) for s in snapshot_set
    )
