"""
Hand-coded protobuf wire format primitives.

Covers the subset of the encoding used by the norlys feeds:

    wire type 0  varint            (int32 / int64 / uint)
    wire type 1  64-bit fixed      (double)
    wire type 2  length-delimited  (sub-messages, bytes)
    wire type 5  32-bit fixed      (skipped, never used by our schemas)

Decoders describe a message as a table of FieldRule entries keyed by field
number and hand it to decode_fields(), which walks the buffer once.
No protobuf library needed.
"""

import struct
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Union

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_FIXED32 = 5

WIRE_TYPES = (WIRE_VARINT, WIRE_FIXED64, WIRE_LENGTH_DELIMITED, WIRE_FIXED32)

# A 64-bit value needs at most 10 groups of 7 bits.
MAX_VARINT_BYTES = 10

_UINT64_MAX = 0xFFFFFFFFFFFFFFFF
_DOUBLE = struct.Struct("<d")

Buffer = Union[bytes, bytearray, memoryview]


class DecodeError(ValueError):
    """Base class for everything that can go wrong while decoding."""


class Truncated(DecodeError):
    """The buffer ends in the middle of a field."""


class MalformedVarint(DecodeError):
    """Varint longer than 10 bytes or wider than 64 bits."""


class UnknownWireType(DecodeError):
    """Wire type outside {0, 1, 2, 5}."""


class MalformedMessage(DecodeError):
    """Structurally valid bytes that do not match the expected schema."""


@dataclass(frozen=True)
class WireTag:
    field_number: int
    wire_type: int


@dataclass(frozen=True)
class FieldRule:
    """How to handle one field number of a message.

    convert receives the raw payload: an int for varints, a memoryview of
    8 / 4 bytes for fixed fields, and a memoryview of the sub-buffer for
    length-delimited fields.
    """

    name: str
    wire_type: int
    convert: Callable[[Any], Any]
    repeated: bool = False


def _require(buf: Buffer, pos: int, width: int, what: str) -> None:
    if pos + width > len(buf):
        raise Truncated(
            f"{what} needs {width} bytes at offset {pos}, "
            f"only {len(buf) - pos} left"
        )


def decode_varint(buf: Buffer, pos: int) -> tuple[int, int]:
    """Decode a varint from buf starting at pos. Returns (value, new_pos)."""
    result = 0
    shift = 0
    for _ in range(MAX_VARINT_BYTES):
        if pos >= len(buf):
            raise Truncated(f"Truncated varint at offset {pos}")
        b = buf[pos]
        pos += 1
        result |= (b & 0x7F) << shift
        if (b & 0x80) == 0:
            if result > _UINT64_MAX:
                raise MalformedVarint(f"Varint overflows 64 bits before offset {pos}")
            return result, pos
        shift += 7
    raise MalformedVarint(f"Varint longer than {MAX_VARINT_BYTES} bytes before offset {pos}")


def decode_double(buf: Buffer, pos: int) -> tuple[float, int]:
    """Read a little-endian IEEE-754 double. Returns (value, new_pos)."""
    _require(buf, pos, 8, "fixed64")
    (value,) = _DOUBLE.unpack_from(buf, pos)
    return value, pos + 8


def to_int64(val: int) -> int:
    """proto int64 uses two's complement in varint encoding."""
    val &= _UINT64_MAX
    if val > 0x7FFFFFFFFFFFFFFF:
        val -= 0x10000000000000000
    return val


def to_int32(val: int) -> int:
    val &= 0xFFFFFFFF
    if val > 0x7FFFFFFF:
        val -= 0x100000000
    return val


def as_double(raw: Buffer) -> float:
    """FieldRule converter for Fixed64 double payloads."""
    return _DOUBLE.unpack(raw)[0]


def decode_tag(buf: Buffer, pos: int) -> tuple[WireTag, int]:
    tag, pos = decode_varint(buf, pos)
    field_number = tag >> 3
    wire_type = tag & 0x07
    if wire_type not in WIRE_TYPES:
        raise UnknownWireType(f"Unknown wire type {wire_type} at field {field_number}")
    if field_number == 0:
        raise MalformedMessage(f"Field number 0 is reserved (offset {pos})")
    return WireTag(field_number, wire_type), pos


def iter_fields(buf: Buffer) -> Iterator[tuple[WireTag, Any]]:
    """Walk buf once, yielding (tag, raw payload) for every field."""
    view = memoryview(buf)
    pos = 0
    end = len(view)

    while pos < end:
        tag, pos = decode_tag(view, pos)

        if tag.wire_type == WIRE_VARINT:
            value, pos = decode_varint(view, pos)

        elif tag.wire_type == WIRE_FIXED64:
            _require(view, pos, 8, "fixed64")
            value = view[pos : pos + 8]
            pos += 8

        elif tag.wire_type == WIRE_LENGTH_DELIMITED:
            length, pos = decode_varint(view, pos)
            _require(view, pos, length, f"field {tag.field_number}")
            value = view[pos : pos + length]
            pos += length

        else:  # WIRE_FIXED32
            _require(view, pos, 4, "fixed32")
            value = view[pos : pos + 4]
            pos += 4

        yield tag, value


def decode_fields(buf: Buffer, rules: Mapping[int, FieldRule]) -> dict[str, Any]:
    """
    Decode one message using a field-number -> FieldRule table.

    Unknown field numbers are skipped. Repeated fields collect into a list
    in decode order; for singular fields the last occurrence wins. Fields
    that never appear are left out of the result so the caller's defaults
    apply.
    """
    values: dict[str, Any] = {}
    for tag, raw in iter_fields(buf):
        rule = rules.get(tag.field_number)
        if rule is None:
            continue
        if tag.wire_type != rule.wire_type:
            raise MalformedMessage(
                f"Field {tag.field_number} ({rule.name}) expected wire type "
                f"{rule.wire_type}, got {tag.wire_type}"
            )
        value = rule.convert(raw)
        if rule.repeated:
            values.setdefault(rule.name, []).append(value)
        else:
            values[rule.name] = value
    return values


# ---------------------------------------- #
#  Encoding                                 #
# ---------------------------------------- #


def encode_varint(value: int) -> bytes:
    """Encode an int as a varint; negatives as 64-bit two's complement."""
    if value < 0:
        value += 1 << 64
    if value < 0 or value > _UINT64_MAX:
        raise ValueError(f"Value {value} does not fit in 64 bits")

    out = bytearray()
    while True:
        b = value & 0x7F
        value >>= 7
        if value:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def encode_tag(field_number: int, wire_type: int) -> bytes:
    return encode_varint((field_number << 3) | wire_type)


def encode_double(field_number: int, value: float) -> bytes:
    return encode_tag(field_number, WIRE_FIXED64) + _DOUBLE.pack(value)


def encode_varint_field(field_number: int, value: int) -> bytes:
    return encode_tag(field_number, WIRE_VARINT) + encode_varint(value)


def encode_length_delimited(field_number: int, payload: bytes) -> bytes:
    return (
        encode_tag(field_number, WIRE_LENGTH_DELIMITED)
        + encode_varint(len(payload))
        + payload
    )
