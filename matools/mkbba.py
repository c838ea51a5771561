"""Command: convert a standard MIDI file to a BBA song file."""

from __future__ import annotations

import sys

from matools.fsutil import read_file, write_file
from matools.mid2bba import mid2bba_convert
from matools.midi_file import MidiError

_PROG = "mkbba"


def _err(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Command entry: mkbba -oOUTPUT INPUT."""
    args = sys.argv[1:] if argv is None else list(argv)
    dstpath = srcpath = None
    for arg in args:
        if arg.startswith("-o"):
            if dstpath is not None:
                return _err(f"{_PROG}: Multiple output paths")
            dstpath = arg[2:]
        elif not arg or arg.startswith("-"):
            return _err(f"{_PROG}: Unexpected argument '{arg}'")
        elif srcpath is not None:
            return _err(f"{_PROG}: Multiple input paths")
        else:
            srcpath = arg
    if dstpath is None or srcpath is None:
        print(f"Usage: {_PROG} -oOUTPUT INPUT", file=sys.stderr)
        return _err("  OUTPUT is a BBA file (opaque binary), INPUT is a MIDI file.")

    try:
        src = read_file(srcpath)
    except OSError:
        return _err(f"{srcpath}: Failed to read file")

    try:
        dst = mid2bba_convert(src, srcpath)
    except MidiError as exc:
        print(exc, file=sys.stderr)
        return _err(f"{srcpath}: Failed to convert song")

    try:
        write_file(dstpath, dst)
    except OSError:
        return _err(f"{dstpath}: Failed to write file")
    return 0


if __name__ == "__main__":
    sys.exit(main())