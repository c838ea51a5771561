"""Command: convert a PNG into a C image declaration for 8- or 16-bit screens."""

from __future__ import annotations

import sys

from matools.fsutil import read_file, write_file
from matools.png_decoder import PngError, decode_png
from matools.png_image import ColorType, PngImage

COLORKEY8 = 0x1C
COLORKEY16 = 0xE007

_TEXT_LIMIT = 131072
_LINE_LIMIT = 80
_PROG = "mkimage"


def _pixel8(r: int, g: int, b: int) -> int:
    return (r >> 6) | ((g & 0xE0) >> 3) | (b & 0xE0)


def _pixel16(r: int, g: int, b: int) -> int:
    return (((r & 0xF8) << 5) | ((g & 0x1C) << 11) | (g >> 5) | (b & 0xF8)) & 0xFFFF


_FORMATS = {
    8: (COLORKEY8, 0x04, _pixel8, "0x{:02x},", 5),
    16: (COLORKEY16, 0x2000, _pixel16, "0x{:04x},", 7),
}


def _declaration(rgba: PngImage, name: str, pixelsize: int) -> str:
    try:
        key_value, flip, convert, fmt, width = _FORMATS[pixelsize]
    except KeyError:
        raise ValueError(f"unsupported pixel size {pixelsize}") from None

    count = rgba.w * rgba.h
    pixels = rgba.pixels[:count * 4]
    # A zero byte in the run starting at the first alpha selects a colour key.
    colorkey = key_value if 0 in rgba.pixels[3:3 + count] else 0

    parts = [f"MA_IMAGE_DECLARE({name},{rgba.w},{rgba.h},{colorkey},\n  "]
    column = 0
    for r, g, b, a in zip(pixels[0::4], pixels[1::4], pixels[2::4], pixels[3::4]):
        if column > _LINE_LIMIT:
            parts.append("\n  ")
            column = 0
        if colorkey and not a:
            pixel = colorkey
        else:
            pixel = convert(r, g, b)
            if colorkey and pixel == colorkey:
                pixel ^= flip
        parts.append(fmt.format(pixel))
        column += width
    parts.append("\n)\n")
    text = "".join(parts)
    if len(text) >= _TEXT_LIMIT:
        raise ValueError("image too large")
    return text


def text_from_png_image(image: PngImage, name: str, pixelsize: int = 0) -> str:
    """Return C source declaring the image for 8-bit, 16-bit, or both (pixelsize 0).

    Fully transparent pixels become a colour key; opaque pixels that
    would collide with the key are nudged by one bit. Raises ValueError
    if the text would be too large or the pixel size is unsupported.
    """
    rgba = image.convert(8, ColorType.RGBA)
    if pixelsize:
        return _declaration(rgba, name, pixelsize)
    text8 = _declaration(rgba, name, 8)
    text16 = _declaration(rgba, name, 16)
    return (
        '#include "multiarcade.h"\n#if MA_PIXELSIZE==8\n'
        f"{text8}\n#else\n{text16}\n#endif\n"
    )


def _derive_name(srcpath: str, name: str | None) -> str:
    if name is None:
        name = srcpath.rsplit("/", 1)[-1]
    return name.split(".", 1)[0]


def _err(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Command entry: mkimage -oOUTPUT INPUT [-nNAME] [-s8|-s16]."""
    args = sys.argv[1:] if argv is None else list(argv)
    dstpath = srcpath = name = None
    pixelsize = 0
    for arg in args:
        if arg.startswith("-o"):
            if dstpath is not None:
                return _err(f"{_PROG}: Multiple output paths")
            dstpath = arg[2:]
        elif arg.startswith("-n"):
            if name is not None:
                return _err(f"{_PROG}: Multiple names")
            name = arg[2:]
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
        print(f"Usage: {_PROG} -oOUTPUT INPUT [-nNAME] [-s8|-s16]", file=sys.stderr)
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
        text = text_from_png_image(image, name, pixelsize)
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