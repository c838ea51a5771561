import os

import pytest

from matools.fsutil import file_type, list_dir, read_file, write_file


def test_write_then_read_round_trip(tmp_path):
    target = tmp_path / "blob.bin"
    payload = bytes(range(256)) * 3
    write_file(target, payload)
    assert read_file(target) == payload


def test_empty_file_round_trip(tmp_path):
    target = tmp_path / "empty"
    write_file(target, b"")
    assert read_file(target) == b""


def test_write_replaces_existing_content(tmp_path):
    target = tmp_path / "file.txt"
    write_file(target, b"a much longer original body")
    write_file(target, b"short")
    assert read_file(target) == b"short"


def test_read_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_file(tmp_path / "nope")


def test_write_into_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        write_file(tmp_path / "no" / "such" / "dir.bin", b"x")


def test_list_dir_reports_types(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"1")
    (tmp_path / "sub").mkdir()
    entries = sorted(list_dir(str(tmp_path)))
    assert entries == [
        (str(tmp_path) + "/a.txt", "a.txt", "f"),
        (str(tmp_path) + "/sub", "sub", "d"),
    ]


def test_list_dir_with_trailing_slash(tmp_path):
    (tmp_path / "x").write_bytes(b"")
    entries = list(list_dir(str(tmp_path) + "/"))
    assert entries == [(str(tmp_path) + "/x", "x", "f")]


def test_list_dir_symlink(tmp_path):
    (tmp_path / "real").write_bytes(b"")
    os.symlink(tmp_path / "real", tmp_path / "link")
    types = {base: kind for _, base, kind in list_dir(str(tmp_path))}
    assert types == {"real": "f", "link": "l"}


def test_list_dir_empty_directory(tmp_path):
    assert list(list_dir(str(tmp_path))) == []


def test_list_dir_rejects_empty_path():
    with pytest.raises(ValueError):
        list(list_dir(""))


def test_list_dir_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(list_dir(str(tmp_path / "missing")))


def test_file_type(tmp_path):
    regular = tmp_path / "f"
    regular.write_bytes(b"")
    assert file_type(regular) == "f"
    assert file_type(tmp_path) == "d"
    assert file_type(tmp_path / "missing") is None


def test_file_type_follows_links(tmp_path):
    (tmp_path / "dir").mkdir()
    os.symlink(tmp_path / "dir", tmp_path / "link")
    assert file_type(tmp_path / "link") == "d"