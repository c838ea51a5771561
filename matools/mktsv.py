"""Convert a 96x64 PNG into a raw screen image ('tsv' file)."""

from __future__ import annotations

import sys

from matools.ctab import match_rgb
from matools.fsutil import read_file, write_file
from matools.png_decoder import PngError, decode_png
from matools.png_image import ColorType, PngImage

SCREEN_W = 96
SCREEN_H = 64

_PROG = "mktsv"


def tsv_from_rgb(rgb: bytes, pixelsize: int) -> bytes:
    """Convert packed RGB8 pixels to palette indices (8) or big-endian BGR565 (16)."""
    triples = (bytes(rgb[i:i + 3]) for i in range(0, len(rgb) - len(rgb) % 3, 3))
    if pixelsize == 8:
        cache: dict[bytes, int] = {}
        out = bytearray()
        for triple in triples:
            index = cache.get(triple)
            if index is None:
                index = cache[triple] = match_rgb(triple)
            out.append(index)
        return bytes(out)
    out = bytearray()
    for r, g, b in triples:
        bgr565 = ((b << 8) & 0xF800) | ((g << 3) & 0x07E0) | (r >> 3)
        out += bgr565.to_bytes(2, "big")
    return bytes(out)


def tsv_from_png_image(image: PngImage, pixelsize: int) -> bytes:
    """Convert a 96x64 image to screen pixels of the given size (8 or 16 bits)."""
    if image.w != SCREEN_W or image.h != SCREEN_H:
        raise ValueError(
            f"Dimensions must be {SCREEN_W}x{SCREEN_H}. Found {image.w}x{image.h}"
        )
    rgb = image.convert(8, ColorType.RGB)
    return tsv_from_rgb(bytes(rgb.pixels[:SCREEN_W * SCREEN_H * 3]), pixelsize)


def _err(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Command entry: mktsv -oOUTPUT INPUT [-s8|-s16]."""
    args = sys.argv[1:] if argv is None else list(argv)
    dstpath = srcpath = None
    pixelsize = 16
    for arg in args:
        if arg.startswith("-o"):
            if dstpath is not None:
                return _err(f"{_PROG}: Multiple output paths")
            dstpath = arg[2:]
        elif arg == "-s8":
            pixelsize = 8
        elif arg == "-s16":
            pixelsize = 16
        elif not arg or arg.startswith("-"):
            return _err(f"{_PROG}: Unexpected argument '{arg}'")
        elif srcpath is not None:
            return _err(f"{_PROG}: Multiple input paths")
        else:
            srcpath = arg
    if dstpath is None or srcpath is None:
        print(f"Usage: {_PROG} -oOUTPUT INPUT [-s8]", file=sys.stderr)
        return _err("  OUTPUT is a TinyArcade 'tsv' file, INPUT is a PNG file.")

    try:
        src = read_file(srcpath)
    except OSError:
        return _err(f"{srcpath}: Failed to read file")

    try:
        image = decode_png(src)
    except PngError:
        return _err(f"{srcpath}: Failed to decode {len(src)}-byte file as PNG")

    if image.w != SCREEN_W or image.h != SCREEN_H:
        return _err(
            f"{srcpath}: Dimensions must be {SCREEN_W}x{SCREEN_H}. Found {image.w}x{image.h}"
        )

    try:
        dst = tsv_from_png_image(image, pixelsize)
    except ValueError:
        return _err(f"{srcpath}: Failed to convert image")

    try:
        write_file(dstpath, dst)
    except OSError:
        return _err(f"{dstpath}: Failed to write file")
    return 0


if __name__ == "__main__":
    sys.exit(main())