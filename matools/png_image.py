"""In-memory PNG image: pixel storage, extra chunks and format conversion."""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

_INT_MAX = 0x7FFFFFFF

PixelReader = Callable[[memoryview, int], int]
PixelWriter = Callable[[memoryview, int, int], None]


class ColorType(enum.IntEnum):
    """PNG colour types as stored in IHDR."""

    GRAY = 0x00
    RGB = 0x02
    INDEX = 0x03
    GRAYA = 0x04
    RGBA = 0x06


def png_id(name: str | bytes) -> int:
    """Return the 32-bit big-endian chunk id for a four-character name."""
    raw = name.encode("latin-1") if isinstance(name, str) else bytes(name)
    if len(raw) != 4:
        raise ValueError(f"chunk id must be 4 characters, got {name!r}")
    return int.from_bytes(raw, "big")


@dataclass
class Chunk:
    """An ancillary chunk kept alongside the pixels."""

    id: int
    data: bytes


_VALID_DEPTHS = {
    ColorType.GRAY: ((1, 2, 4, 8, 16), 1),
    ColorType.RGB: ((8, 16), 3),
    ColorType.INDEX: ((1, 2, 4, 8), 1),
    ColorType.GRAYA: ((8, 16), 2),
    ColorType.RGBA: ((8, 16), 4),
}


def pixelsize_for_format(depth: int, colortype: int) -> int:
    """Return the full pixel size in bits (1..64), or 0 if the format is invalid."""
    try:
        depths, channels = _VALID_DEPTHS[ColorType(colortype)]
    except ValueError:
        return 0
    if depth not in depths:
        return 0
    return depth * channels


# Pixel accessors, all through normalised 32-bit RGBA.

def _gray(y: int, a: int = 0xFF) -> int:
    return (y << 24) | (y << 16) | (y << 8) | a


def _channels(px: int) -> tuple[int, int, int, int]:
    return (px >> 24) & 0xFF, (px >> 16) & 0xFF, (px >> 8) & 0xFF, px & 0xFF


def _luma(px: int) -> int:
    r, g, b, _ = _channels(px)
    return (r + g + b) // 3


def _rd_y1(row: memoryview, x: int) -> int:
    lit = (row[x >> 3] >> (7 - (x & 7))) & 1
    y = 0xFF * lit
    return _gray(y)


def _wr_y1(row: memoryview, x: int, px: int) -> None:
    r, g, b, _ = _channels(px)
    mask = 0x80 >> (x & 7)
    if r + g + b >= 0x180:
        row[x >> 3] |= mask
    else:
        row[x >> 3] &= ~mask & 0xFF


def _rd_y2(row: memoryview, x: int) -> int:
    y = (row[x >> 2] >> (6 - ((x & 3) << 1))) & 3
    y |= y << 2
    y |= y << 4
    return _gray(y)


def _wr_y2(row: memoryview, x: int, px: int) -> None:
    y = _luma(px) >> 6
    shift = 6 - ((x & 3) << 1)
    i = x >> 2
    row[i] = (row[i] & ~(3 << shift) & 0xFF) | (y << shift)


def _rd_y4(row: memoryview, x: int) -> int:
    byte = row[x >> 1]
    y = byte & 0x0F if x & 1 else byte >> 4
    y |= y << 4
    return _gray(y)


def _wr_y4(row: memoryview, x: int, px: int) -> None:
    y = _luma(px)
    i = x >> 1
    if x & 1:
        row[i] = (row[i] & 0xF0) | (y >> 4)
    else:
        row[i] = (row[i] & 0x0F) | (y & 0xF0)


def _rd_y8(row: memoryview, x: int) -> int:
    return _gray(row[x])


def _wr_y8(row: memoryview, x: int, px: int) -> None:
    row[x] = _luma(px)


def _rd_y16(row: memoryview, x: int) -> int:
    return _gray(row[x << 1])


def _wr_y16(row: memoryview, x: int, px: int) -> None:
    y = _luma(px)
    p = x << 1
    row[p] = y
    row[p + 1] = y


def _rd_ya8(row: memoryview, x: int) -> int:
    p = x << 1
    return _gray(row[p], row[p + 1])


def _wr_ya8(row: memoryview, x: int, px: int) -> None:
    p = x << 1
    row[p] = _luma(px)
    row[p + 1] = px & 0xFF


def _rd_ya16(row: memoryview, x: int) -> int:
    p = x << 2
    return _gray(row[p], row[p + 2])


def _wr_ya16(row: memoryview, x: int, px: int) -> None:
    y = _luma(px)
    a = px & 0xFF
    p = x << 2
    row[p:p + 4] = bytes((y, y, a, a))


def _rd_rgb8(row: memoryview, x: int) -> int:
    p = x * 3
    return (row[p] << 24) | (row[p + 1] << 16) | (row[p + 2] << 8) | 0xFF


def _wr_rgb8(row: memoryview, x: int, px: int) -> None:
    r, g, b, _ = _channels(px)
    p = x * 3
    row[p:p + 3] = bytes((r, g, b))


def _rd_rgb16(row: memoryview, x: int) -> int:
    p = x * 6
    return (row[p] << 24) | (row[p + 2] << 16) | (row[p + 4] << 8) | 0xFF


def _wr_rgb16(row: memoryview, x: int, px: int) -> None:
    r, g, b, _ = _channels(px)
    p = x * 6
    row[p:p + 6] = bytes((r, r, g, g, b, b))


def _rd_rgba8(row: memoryview, x: int) -> int:
    p = x << 2
    return (row[p] << 24) | (row[p + 1] << 16) | (row[p + 2] << 8) | row[p + 3]


def _wr_rgba8(row: memoryview, x: int, px: int) -> None:
    p = x << 2
    row[p:p + 4] = bytes(_channels(px))


def _rd_rgba16(row: memoryview, x: int) -> int:
    p = x << 3
    return (row[p] << 24) | (row[p + 2] << 16) | (row[p + 4] << 8) | row[p + 6]


def _wr_rgba16(row: memoryview, x: int, px: int) -> None:
    r, g, b, a = _channels(px)
    p = x << 3
    row[p:p + 8] = bytes((r, r, g, g, b, b, a, a))


_GRAY_READERS = {1: _rd_y1, 2: _rd_y2, 4: _rd_y4, 8: _rd_y8, 16: _rd_y16}
_GRAY_WRITERS = {1: _wr_y1, 2: _wr_y2, 4: _wr_y4, 8: _wr_y8, 16: _wr_y16}

_READERS: dict[int, dict[int, PixelReader]] = {
    ColorType.GRAY: _GRAY_READERS,
    ColorType.INDEX: _GRAY_READERS,
    ColorType.RGB: {8: _rd_rgb8, 16: _rd_rgb16},
    ColorType.GRAYA: {8: _rd_ya8, 16: _rd_ya16},
    ColorType.RGBA: {8: _rd_rgba8, 16: _rd_rgba16},
}
_WRITERS: dict[int, dict[int, PixelWriter]] = {
    ColorType.GRAY: _GRAY_WRITERS,
    ColorType.INDEX: _GRAY_WRITERS,
    ColorType.RGB: {8: _wr_rgb8, 16: _wr_rgb16},
    ColorType.GRAYA: {8: _wr_ya8, 16: _wr_ya16},
    ColorType.RGBA: {8: _wr_rgba8, 16: _wr_rgba16},
}


def get_pixel_reader(depth: int, colortype: int) -> PixelReader | None:
    """Return ``reader(row, x) -> rgba32`` for the format, or None if unsupported.

    Indexed pixels read like gray.
    """
    return _READERS.get(colortype, {}).get(depth)


def get_pixel_writer(depth: int, colortype: int) -> PixelWriter | None:
    """Return ``writer(row, x, rgba32)`` for the format, or None if unsupported."""
    return _WRITERS.get(colortype, {}).get(depth)


@dataclass
class PngImage:
    """Decoded image pixels with IHDR fields and ancillary chunks."""

    w: int = 0
    h: int = 0
    depth: int = 0
    colortype: int = 0
    pixels: bytearray = field(default_factory=bytearray)
    stride: int = 0
    pixelsize: int = 0
    chunks: list[Chunk] = field(default_factory=list)

    def allocate_pixels(self, w: int, h: int, depth: int, colortype: int) -> None:
        """Replace the pixel buffer with a zeroed one of the given size and format."""
        if w < 1 or h < 1:
            raise ValueError(f"invalid dimensions {w}x{h}")
        pixelsize = pixelsize_for_format(depth, colortype)
        if pixelsize < 1:
            raise ValueError(f"invalid pixel format depth={depth} colortype={colortype}")
        if pixelsize > (_INT_MAX - 7) // w:
            raise ValueError("image too wide")
        stride = (pixelsize * w + 7) >> 3
        if stride > _INT_MAX // h:
            raise ValueError("image too large")
        self.pixels = bytearray(stride * h)
        self.stride = stride
        self.pixelsize = pixelsize
        self.w = w
        self.h = h
        self.depth = depth
        self.colortype = colortype

    def add_chunk(self, chunk_id: int, data: bytes = b"") -> None:
        """Append a copy of a chunk's payload."""
        self.chunks.append(Chunk(chunk_id, bytes(data)))

    def get_chunk(self, chunk_id: int) -> bytes | None:
        """Return the payload of the first chunk with ``chunk_id``, or None."""
        for chunk in self.chunks:
            if chunk.id == chunk_id:
                return chunk.data
        return None

    def _rows(self) -> Iterator[memoryview]:
        view = memoryview(self.pixels)
        for y in range(self.h):
            start = y * self.stride
            yield view[start:start + self.stride]

    def convert(self, depth: int, colortype: int) -> PngImage:
        """Return a copy of this image in another format, without extra chunks.

        Indexed images with a PLTE are expanded through the palette (and
        tRNS); without a PLTE they behave like gray.
        """
        dst = PngImage()
        dst.allocate_pixels(self.w, self.h, depth, colortype)

        if dst.colortype == self.colortype and dst.depth == self.depth:
            if dst.stride == self.stride:
                dst.pixels[:] = self.pixels[:dst.stride * dst.h]
            else:
                for y, row in enumerate(self._rows()):
                    start = y * dst.stride
                    dst.pixels[start:start + dst.stride] = row[:dst.stride]
            return dst

        if self.colortype == ColorType.INDEX:
            plte = self.get_chunk(png_id("PLTE"))
            if plte is not None:
                trns = self.get_chunk(png_id("tRNS")) or b""
                _convert_from_index(dst, self, plte, trns)
                return dst

        reader = get_pixel_reader(self.depth, self.colortype)
        if reader is None:
            raise ValueError(f"cannot read format depth={self.depth} colortype={self.colortype}")
        writer = get_pixel_writer(dst.depth, dst.colortype)
        if writer is None:
            raise ValueError(f"cannot write format depth={depth} colortype={colortype}")
        for dstrow, srcrow in zip(dst._rows(), self._rows()):
            for x in range(dst.w):
                writer(dstrow, x, reader(srcrow, x))
        return dst


def _convert_from_index(dst: PngImage, src: PngImage, plte: bytes, trns: bytes) -> None:
    pltec = len(plte) // 3
    trnsc = len(trns)

    def rgb_of(ix: int) -> bytes:
        return plte[ix * 3:ix * 3 + 3] if ix < pltec else b"\x00\x00\x00"

    def alpha_of(ix: int) -> int:
        return trns[ix] if ix < trnsc else 0xFF

    # PLTE is always rgb8, so these targets get a direct path.
    if (
        dst.depth == 8
        and src.depth == 8
        and dst.colortype in (ColorType.RGB, ColorType.RGBA)
    ):
        with_alpha = dst.colortype == ColorType.RGBA
        step = 4 if with_alpha else 3
        for dstrow, srcrow in zip(dst._rows(), src._rows()):
            for x in range(dst.w):
                ix = srcrow[x]
                p = x * step
                dstrow[p:p + 3] = rgb_of(ix)
                if with_alpha:
                    dstrow[p + 3] = alpha_of(ix)
        return

    writer = get_pixel_writer(dst.depth, dst.colortype)
    depth = src.depth
    if writer is None or depth not in (1, 2, 4, 8):
        return
    mask = (1 << depth) - 1
    for dstrow, srcrow in zip(dst._rows(), src._rows()):
        for x in range(dst.w):
            bit = x * depth
            ix = (srcrow[bit >> 3] >> (8 - depth - (bit & 7))) & mask
            r, g, b = rgb_of(ix)
            writer(dstrow, x, (r << 24) | (g << 16) | (b << 8) | alpha_of(ix))