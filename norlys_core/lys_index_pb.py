"""
Protobuf decoder for the Lys index feed.

Matches the proto3 schema:
    message LysIndex {
        message IndexPoint {
            int64 date = 1;          // unix milliseconds
            int32 high = 2;
            int32 mid = 3;
            int32 stationsHigh = 4;
            int32 stationsMid = 5;
        }
        repeated IndexPoint points = 1;
    }
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

from norlys_core.wire_format import (
    WIRE_LENGTH_DELIMITED,
    WIRE_VARINT,
    Buffer,
    FieldRule,
    decode_fields,
    encode_length_delimited,
    encode_varint_field,
    to_int32,
    to_int64,
)

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ms_to_datetime(timestamp_ms: int) -> Optional[datetime]:
    """UTC datetime for unix milliseconds, None outside years 1..9999."""
    try:
        return EPOCH + timedelta(milliseconds=timestamp_ms)
    except OverflowError:
        return None


def datetime_to_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // timedelta(milliseconds=1)


@dataclass(frozen=True)
class TelemetrySample:
    timestamp_ms: int = 0
    high_value: int = 0
    mid_value: int = 0
    high_station_count: int = 0
    mid_station_count: int = 0

    @property
    def timestamp(self) -> Optional[datetime]:
        return ms_to_datetime(self.timestamp_ms)


@dataclass(frozen=True)
class TelemetrySeries:
    """Samples in decode order. Not assumed to be sorted."""

    samples: tuple = ()

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[TelemetrySample]:
        return iter(self.samples)

    def __getitem__(self, index: int) -> TelemetrySample:
        return self.samples[index]

    def latest(self) -> Optional[TelemetrySample]:
        """Sample with the greatest timestamp, or None when empty."""
        if not self.samples:
            return None
        return max(self.samples, key=lambda s: s.timestamp_ms)


_SAMPLE_FIELDS = {
    1: FieldRule("timestamp_ms", WIRE_VARINT, to_int64),
    2: FieldRule("high_value", WIRE_VARINT, to_int32),
    3: FieldRule("mid_value", WIRE_VARINT, to_int32),
    4: FieldRule("high_station_count", WIRE_VARINT, to_int32),
    5: FieldRule("mid_station_count", WIRE_VARINT, to_int32),
}


def _decode_sample(buf: Buffer) -> TelemetrySample:
    """Decode an IndexPoint sub-message from its length-delimited bytes."""
    return TelemetrySample(**decode_fields(buf, _SAMPLE_FIELDS))


_SERIES_FIELDS = {
    1: FieldRule("samples", WIRE_LENGTH_DELIMITED, _decode_sample, repeated=True),
}


def decode_series(buf: Buffer) -> TelemetrySeries:
    """Decode a LysIndex message. An empty buffer is an empty series."""
    fields = decode_fields(buf, _SERIES_FIELDS)
    series = TelemetrySeries(samples=tuple(fields.get("samples", ())))
    logger.debug("Decoded %d index samples from %d bytes", len(series), len(buf))
    return series


def encode_sample(sample: TelemetrySample) -> bytes:
    return b"".join(
        [
            encode_varint_field(1, sample.timestamp_ms),
            encode_varint_field(2, sample.high_value),
            encode_varint_field(3, sample.mid_value),
            encode_varint_field(4, sample.high_station_count),
            encode_varint_field(5, sample.mid_station_count),
        ]
    )


def encode_series(series: TelemetrySeries) -> bytes:
    return b"".join(encode_length_delimited(1, encode_sample(s)) for s in series)
