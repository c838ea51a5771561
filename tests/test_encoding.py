import pytest

from matools.encoding import (
    decode_32be,
    encode_16be,
    encode_32be,
    encode_u8,
    vlq_decode,
)


def test_encode_u8_truncates():
    assert encode_u8(0x1FF) == b"\xff"
    assert encode_u8(0x41) == b"A"


def test_encode_16be_byte_order():
    assert encode_16be(0x1234) == b"\x12\x34"


def test_encode_32be_byte_order():
    assert encode_32be(0x4D546864) == b"MThd"


def test_decode_32be_round_trip():
    for value in (0, 1, 0x12345678, 0x7FFFFFFF):
        data = b"xx" + encode_32be(value)
        assert decode_32be(data, 2) == (value, 6)


def test_decode_32be_is_signed():
    value, offset = decode_32be(encode_32be(-1))
    assert value == -1
    assert offset == 4


def test_decode_32be_short_input():
    with pytest.raises(ValueError):
        decode_32be(b"\x00\x01\x02")
    with pytest.raises(ValueError):
        decode_32be(b"\x00\x01\x02\x03", 1)


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"\x00", (0, 1)),
        (b"\x7f\x55", (0x7F, 1)),
        (b"\x81\x00", (0x80, 2)),
        (b"\xff\xff\xff\x7f", (0x0FFFFFFF, 4)),
    ],
)
def test_vlq_decode_values(data, expected):
    assert vlq_decode(data) == expected


def test_vlq_decode_ignores_trailing_data():
    value, length = vlq_decode(b"\x81\x00\x99\x88")
    assert length == 2
    assert value == vlq_decode(b"\x81\x00")[0]


@pytest.mark.parametrize("data", [b"", b"\x80", b"\x81\x82", b"\xff\xff\xff"])
def test_vlq_decode_truncated(data):
    with pytest.raises(ValueError):
        vlq_decode(data)


def test_vlq_decode_too_long():
    with pytest.raises(ValueError):
        vlq_decode(b"\x81\x80\x80\x80\x00")