"""Tests for shipit.platform.files module."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from shipit.platform.files import copy_file, list_tree, sha256_file


def test_sha256_file(tmp_path: Path) -> None:
    path = tmp_path / "bin"
    path.write_bytes(b"binary")
    assert sha256_file(path) == hashlib.sha256(b"binary").hexdigest()


def test_copy_file_creates_parents(tmp_path: Path) -> None:
    src = tmp_path / "src.bin"
    src.write_bytes(b"x")
    src.chmod(0o755)

    dest = copy_file(src, tmp_path / "a" / "b" / "dest.bin")

    assert dest.read_bytes() == b"x"
    assert dest.stat().st_mode & 0o111


def test_list_tree(tmp_path: Path) -> None:
    (tmp_path / "release").mkdir()
    (tmp_path / "release" / "tool.exe").write_bytes(b"")
    (tmp_path / "build.log").write_text("", encoding="utf-8")

    assert list_tree(tmp_path) == ["build.log", "release/tool.exe"]


def test_list_tree_missing_dir(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        list_tree(tmp_path / "missing")
