"""Big-endian integer packing and MIDI-style variable-length quantities."""

from __future__ import annotations

_MAX_VLQ_LENGTH = 4


def encode_u8(value: int) -> bytes:
    """Return the low 8 bits of ``value`` as one byte."""
    return bytes((value & 0xFF,))


def encode_16be(value: int) -> bytes:
    """Return the low 16 bits of ``value`` as two big-endian bytes."""
    return (value & 0xFFFF).to_bytes(2, "big")


def encode_32be(value: int) -> bytes:
    """Return the low 32 bits of ``value`` as four big-endian bytes."""
    return (value & 0xFFFFFFFF).to_bytes(4, "big")


def decode_32be(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Read a signed 32-bit big-endian integer at ``offset``.

    Returns ``(value, next_offset)``. Raises ValueError if fewer than
    four bytes remain.
    """
    if offset < 0 or len(data) - offset < 4:
        raise ValueError("not enough data for a 32-bit integer")
    value = int.from_bytes(data[offset:offset + 4], "big", signed=True)
    return value, offset + 4


def vlq_decode(data: bytes) -> tuple[int, int]:
    """Decode a variable-length quantity of at most four bytes.

    Returns ``(value, length_consumed)``. Raises ValueError if the input
    ends early or the quantity runs past four bytes.
    """
    value = 0
    for length, byte in enumerate(data[:_MAX_VLQ_LENGTH], start=1):
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, length
    if len(data) < _MAX_VLQ_LENGTH:
        raise ValueError("truncated variable-length quantity")
    raise ValueError("variable-length quantity longer than 4 bytes")