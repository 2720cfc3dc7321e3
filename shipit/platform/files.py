"""Filesystem helpers."""

from __future__ import annotations

import hashlib
import os
import shutil
from pathlib import Path

__all__ = ["copy_file", "list_tree", "sha256_file"]

_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of a file."""
    digest = hashlib.sha256()
    with path.open("rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


def copy_file(src: Path, dest: Path) -> Path:
    """Copy src to dest (creating parents), preserving mode bits."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)
    return dest


def list_tree(root: Path) -> list[str]:
    """List every file under root as sorted POSIX paths relative to root.

    Raises:
        OSError: If root cannot be read.
    """
    if not root.is_dir():
        raise NotADirectoryError(str(root))

    out: list[str] = []

    def _raise(error: OSError) -> None:
        raise error

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
        base = Path(dirpath)
        for name in filenames:
            out.append((base / name).relative_to(root).as_posix())
    return sorted(out)
