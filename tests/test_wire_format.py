import random
import struct

import pytest

from norlys_core.wire_format import (
    WIRE_FIXED32,
    WIRE_FIXED64,
    WIRE_LENGTH_DELIMITED,
    WIRE_VARINT,
    FieldRule,
    MalformedMessage,
    MalformedVarint,
    Truncated,
    UnknownWireType,
    WireTag,
    decode_double,
    decode_fields,
    decode_tag,
    decode_varint,
    encode_double,
    encode_length_delimited,
    encode_tag,
    encode_varint,
    encode_varint_field,
    iter_fields,
    to_int32,
    to_int64,
)


@pytest.mark.parametrize(
    "value, encoded",
    [
        (0, b"\x00"),
        (1, b"\x01"),
        (127, b"\x7f"),
        (128, b"\x80\x01"),
        (300, b"\xac\x02"),
    ],
)
def test_known_varints(value, encoded):
    assert encode_varint(value) == encoded
    assert decode_varint(encoded, 0) == (value, len(encoded))


def test_varint_round_trip_below_2_63():
    rng = random.Random(1234)
    values = [2**32, 2**35 + 7, 2**56, 2**63 - 1]
    values += [rng.randrange(0, 2**63) for _ in range(500)]
    for value in values:
        encoded = encode_varint(value)
        assert decode_varint(encoded, 0) == (value, len(encoded))


def test_decode_varint_from_offset():
    buf = b"\xff" + encode_varint(300) + b"\x05"
    assert decode_varint(buf, 1) == (300, 3)


def test_varint_max_uint64_is_ten_bytes():
    encoded = b"\xff" * 9 + b"\x01"
    assert decode_varint(encoded, 0) == (2**64 - 1, 10)


def test_varint_running_off_the_end_is_truncated():
    with pytest.raises(Truncated):
        decode_varint(b"\x80\x80", 0)
    with pytest.raises(Truncated):
        decode_varint(b"", 0)


def test_varint_longer_than_ten_bytes_is_malformed():
    with pytest.raises(MalformedVarint):
        decode_varint(b"\xff" * 10 + b"\x01", 0)


def test_varint_overflowing_64_bits_is_malformed():
    with pytest.raises(MalformedVarint):
        decode_varint(b"\xff" * 9 + b"\x7f", 0)


def test_negative_values_use_twos_complement():
    encoded = encode_varint(-1)
    assert len(encoded) == 10
    raw, _ = decode_varint(encoded, 0)
    assert raw == 2**64 - 1
    assert to_int64(raw) == -1
    assert to_int32(decode_varint(encode_varint(-5), 0)[0]) == -5


def test_encode_varint_rejects_values_wider_than_64_bits():
    with pytest.raises(ValueError):
        encode_varint(2**64)


def test_decode_double():
    buf = struct.pack("<d", 69.6492) + b"\x00"
    assert decode_double(buf, 0) == (69.6492, 8)


def test_decode_double_needs_eight_bytes():
    with pytest.raises(Truncated):
        decode_double(b"\x00" * 7, 0)
    with pytest.raises(Truncated):
        decode_double(b"\x00" * 10, 3)


def test_decode_tag():
    tag, pos = decode_tag(encode_tag(2, WIRE_LENGTH_DELIMITED), 0)
    assert tag == WireTag(2, WIRE_LENGTH_DELIMITED)
    assert pos == 1


@pytest.mark.parametrize("wire_type", [3, 4, 6, 7])
def test_unknown_wire_type(wire_type):
    with pytest.raises(UnknownWireType):
        decode_tag(encode_varint((1 << 3) | wire_type), 0)


def test_field_number_zero_is_rejected():
    with pytest.raises(MalformedMessage):
        decode_tag(b"\x00", 0)


def test_iter_fields_yields_every_wire_type():
    buf = (
        encode_varint_field(1, 150)
        + encode_double(2, 2.5)
        + encode_length_delimited(3, b"abc")
        + encode_tag(4, WIRE_FIXED32)
        + b"\x01\x02\x03\x04"
    )
    fields = [(tag, raw) for tag, raw in iter_fields(buf)]
    assert [tag for tag, _ in fields] == [
        WireTag(1, WIRE_VARINT),
        WireTag(2, WIRE_FIXED64),
        WireTag(3, WIRE_LENGTH_DELIMITED),
        WireTag(4, WIRE_FIXED32),
    ]
    assert fields[0][1] == 150
    assert struct.unpack("<d", fields[1][1])[0] == 2.5
    assert bytes(fields[2][1]) == b"abc"
    assert bytes(fields[3][1]) == b"\x01\x02\x03\x04"


@pytest.mark.parametrize(
    "buf",
    [
        encode_tag(1, WIRE_FIXED64) + b"\x00" * 7,
        encode_tag(1, WIRE_FIXED32) + b"\x00" * 3,
        encode_tag(1, WIRE_LENGTH_DELIMITED) + encode_varint(5) + b"abcd",
        encode_tag(1, WIRE_LENGTH_DELIMITED),
        encode_tag(1, WIRE_VARINT) + b"\x80",
    ],
)
def test_iter_fields_overrun_is_truncated(buf):
    with pytest.raises(Truncated):
        list(iter_fields(buf))


RULES = {
    1: FieldRule("count", WIRE_VARINT, int),
    2: FieldRule("names", WIRE_LENGTH_DELIMITED, lambda raw: bytes(raw).decode(), repeated=True),
}


def test_decode_fields_skips_unknown_fields():
    buf = (
        encode_varint_field(7, 99)
        + encode_varint_field(1, 3)
        + encode_double(8, 1.0)
        + encode_length_delimited(2, b"tromso")
        + encode_tag(9, WIRE_FIXED32)
        + b"\x00\x00\x00\x00"
        + encode_length_delimited(2, b"alta")
    )
    assert decode_fields(buf, RULES) == {"count": 3, "names": ["tromso", "alta"]}


def test_decode_fields_last_singular_value_wins():
    buf = encode_varint_field(1, 3) + encode_varint_field(1, 4)
    assert decode_fields(buf, RULES) == {"count": 4}


def test_decode_fields_absent_fields_are_left_out():
    assert decode_fields(b"", RULES) == {}


def test_decode_fields_wire_type_mismatch():
    buf = encode_length_delimited(1, b"\x01")
    with pytest.raises(MalformedMessage):
        decode_fields(buf, RULES)
