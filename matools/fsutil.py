"""Filesystem conveniences: whole-file read/write and directory listing."""

from __future__ import annotations

import os
import stat
from collections.abc import Iterator

_PATH_LIMIT = 1024


def read_file(path: str | os.PathLike) -> bytes:
    """Return the entire contents of the file at ``path``."""
    with open(path, "rb") as handle:
        return handle.read()


def write_file(path: str | os.PathLike, data: bytes) -> None:
    """Write ``data`` to ``path``, replacing any existing file.

    If writing fails midway, the partial file is removed before the
    error propagates.
    """
    with open(path, "wb") as handle:
        try:
            handle.write(data)
            handle.flush()
        except BaseException:
            handle.close()
            try:
                os.unlink(path)
            except OSError:
                pass
            raise


def _mode_type(mode: int) -> str:
    if stat.S_ISREG(mode):
        return "f"
    if stat.S_ISDIR(mode):
        return "d"
    if stat.S_ISCHR(mode):
        return "c"
    if stat.S_ISBLK(mode):
        return "b"
    if stat.S_ISSOCK(mode):
        return "s"
    if stat.S_ISLNK(mode):
        return "l"
    return "?"


def _entry_type(entry: os.DirEntry) -> str:
    if entry.is_symlink():
        return "l"
    if entry.is_file(follow_symlinks=False):
        return "f"
    if entry.is_dir(follow_symlinks=False):
        return "d"
    try:
        return _mode_type(entry.stat(follow_symlinks=False).st_mode)
    except OSError:
        return "?"


def list_dir(path: str) -> Iterator[tuple[str, str, str]]:
    """Yield ``(subpath, basename, type)`` for each entry directly under ``path``.

    ``type`` is one of 'f', 'd', 'c', 'b', 'l', 's' or '?'. The entries
    '.' and '..' are never reported.
    """
    path = os.fspath(path)
    if not path:
        raise ValueError("empty directory path")
    if len(path) >= _PATH_LIMIT:
        raise ValueError("directory path too long")
    prefix = path if path.endswith("/") else path + "/"
    with os.scandir(path) as entries:
        for entry in entries:
            base = entry.name
            if base in ("", ".", ".."):
                continue
            subpath = prefix + base
            if len(subpath) >= _PATH_LIMIT:
                raise ValueError(f"path too long: {subpath}")
            yield subpath, base, _entry_type(entry)


def file_type(path: str | os.PathLike) -> str | None:
    """Return the type character of ``path`` (following links), or None if it cannot be stat'ed."""
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return None
    return _mode_type(mode)