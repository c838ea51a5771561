"""Command: convert a 128x48 PNG glyph sheet into a C font declaration."""

from __future__ import annotations

import sys
from collections.abc import Sequence

from matools.fsutil import read_file, write_file
from matools.png_decoder import PngError, decode_png
from matools.png_image import ColorType, PngImage

CELL_SIZE = 8
COLUMNS = 16
ROWS = 6
GLYPH_COUNT = COLUMNS * ROWS
FIRST_CHAR = 0x20
SPACE_METRICS = 0x60

_MAX_W = 7
_MAX_H = 7
_MAX_Y = 3
_PROG = "mkfont"


def glyph_from_y1(rows: Sequence[int]) -> tuple[int, int]:
    """Pack one 8x8 cell of 1-bit rows (MSB is leftmost) into ``(metrics, bits)``.

    ``metrics`` is ``(w << 5) | (h << 2) | y``: up to 3 blank rows are
    skipped at the top, blank rows at the bottom and blank columns on both
    sides are trimmed. ``bits`` holds the trimmed pixels row by row from
    the most significant bit. A blank cell gives ``(0, 0)``. Raises
    ValueError if the glyph does not fit in 7x7 at offset 0..3.
    """
    rows = bytes(rows)
    if len(rows) != CELL_SIZE:
        raise ValueError(f"glyph cell must have {CELL_SIZE} rows, got {len(rows)}")

    y = 0
    while y < _MAX_Y and not rows[y]:
        y += 1
    body = rows[y:]
    h = len(body)
    while h and not body[h - 1]:
        h -= 1
    if not h:
        return 0, 0
    body = body[:h]

    aggregate = 0
    for row in body:
        aggregate |= row
    w = 8
    while w and not aggregate & (1 << (8 - w)):
        w -= 1
    x = 0
    while w and not aggregate & 0x80:
        x += 1
        w -= 1
        aggregate = (aggregate << 1) & 0xFF

    if w > _MAX_W or h > _MAX_H or y > _MAX_Y:
        raise ValueError(
            f"Invalid (w,h,y) = ({w},{h},{y}), limit ({_MAX_W},{_MAX_H},{_MAX_Y})"
        )
    metrics = (w << 5) | (h << 2) | y

    bits = 0
    for i, row in enumerate(body):
        bits |= ((row << (x + 24)) & 0xFFFFFFFF) >> (i * w)
    return metrics, bits


def _font_text(metrics: list[int], bits: list[int], name: str) -> str:
    lines = ['#include "multiarcade.h"', f"const struct ma_font font_{name}={{", "  .metrics={"]
    for start in range(0, GLYPH_COUNT, 16):
        lines.append("    " + "".join(f"0x{m:02x}," for m in metrics[start:start + 16]))
    lines.append("  },")
    lines.append("  .bits={")
    for start in range(0, GLYPH_COUNT, 8):
        lines.append("    " + "".join(f"0x{b:08x}," for b in bits[start:start + 8]))
    lines.append("  },")
    lines.append("};")
    return "\n".join(lines) + "\n"


def font_text_from_png_image(image: PngImage, name: str) -> str:
    """Return C source declaring ``font_<name>`` from a 128x48 glyph sheet.

    The sheet holds 16x6 cells of 8x8 pixels for characters 0x20..0x7f.
    Raises ValueError on wrong dimensions or a glyph that does not fit.
    """
    y1 = image.convert(1, ColorType.GRAY)
    want_w = CELL_SIZE * COLUMNS
    want_h = CELL_SIZE * ROWS
    if y1.w != want_w or y1.h != want_h:
        raise ValueError(
            f"Dimensions must be exactly {want_w}x{want_h} ({COLUMNS}x{ROWS} cells of "
            f"{CELL_SIZE}x{CELL_SIZE} pixels). Found {y1.w}x{y1.h}"
        )

    metrics: list[int] = []
    bits: list[int] = []
    for p in range(GLYPH_COUNT):
        row, col = divmod(p, COLUMNS)
        cell = bytes(
            y1.pixels[(row * CELL_SIZE + i) * y1.stride + col] for i in range(CELL_SIZE)
        )
        try:
            glyph_metrics, glyph_bits = glyph_from_y1(cell)
        except ValueError as exc:
            raise ValueError(f"Error digesting glyph 0x{p + FIRST_CHAR:02x}: {exc}") from exc
        # The space is expected to be empty; give it a width of 3.
        if p == 0 and not glyph_metrics and not glyph_bits:
            glyph_metrics = SPACE_METRICS
        metrics.append(glyph_metrics)
        bits.append(glyph_bits)
    return _font_text(metrics, bits, name)


def _derive_name(srcpath: str, name: str | None) -> str:
    if name is None:
        name = srcpath.rsplit("/", 1)[-1]
    return name.split(".", 1)[0]


def _err(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Command entry: mkfont -oOUTPUT INPUT [-nNAME]."""
    args = sys.argv[1:] if argv is None else list(argv)
    dstpath = srcpath = name = None
    for arg in args:
        if arg.startswith("-o"):
            if dstpath is not None:
                return _err(f"{_PROG}: Multiple output paths")
            dstpath = arg[2:]
        elif arg.startswith("-n"):
            if name is not None:
                return _err(f"{_PROG}: Multiple names")
            name = arg[2:]
        elif not arg or arg.startswith("-"):
            return _err(f"{_PROG}: Unexpected argument '{arg}'")
        elif srcpath is not None:
            return _err(f"{_PROG}: Multiple input paths")
        else:
            srcpath = arg
    if dstpath is None or srcpath is None:
        print(f"Usage: {_PROG} -oOUTPUT INPUT [-nNAME]", file=sys.stderr)
        return _err("  OUTPUT is a C file, INPUT is a PNG file.")

    name = _derive_name(srcpath, name)

    try:
        src = read_file(srcpath)
    except OSError:
        return _err(f"{srcpath}: Failed to read file")

    try:
        image = decode_png(src)
    except PngError:
        return _err(f"{srcpath}: Failed to decode {len(src)}-byte file as PNG")

    try:
        text = font_text_from_png_image(image, name)
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return _err(f"{srcpath}: Failed to convert image")

    try:
        write_file(dstpath, text.encode("utf-8"))
    except OSError:
        return _err(f"{dstpath}: Failed to write file")
    return 0


if __name__ == "__main__":
    sys.exit(main())