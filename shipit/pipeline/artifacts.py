"""Artifact repository: a keyed store between the build and release stages.

Each pipeline instance writes under its own key; the composer reads all keys.
`DirectoryArtifactRepository` uses the `<root>/<key>/<file>` layout that CI
artifact upload/download actions produce, so a CI job can sync the directory
with its artifact store.
"""

from __future__ import annotations

import shutil
import threading
from pathlib import Path
from typing import Protocol

from shipit.core.result import Err, Ok, Result
from shipit.pipeline.errors import ArtifactStoreError
from shipit.pipeline.model import Artifact
from shipit.platform.files import copy_file

__all__ = [
    "ArtifactRepository",
    "DirectoryArtifactRepository",
    "MemoryArtifactRepository",
]


class ArtifactRepository(Protocol):
    def put(self, key: str, artifact: Artifact) -> Result[None, ArtifactStoreError]:
        """Store the artifact's file under key, replacing any previous value."""
        ...

    def get(self, key: str, dest_dir: Path) -> Result[Path, ArtifactStoreError]:
        """Copy the file stored under key into dest_dir and return its path."""
        ...

    def keys(self) -> tuple[str, ...]: ...


def _check_key(key: str) -> ArtifactStoreError | None:
    if not key or "/" in key or "\\" in key or key in (".", ".."):
        return ArtifactStoreError(key=key, message="invalid artifact key")
    return None


class DirectoryArtifactRepository:
    """Artifacts stored as `<root>/<key>/<filename>`."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def put(self, key: str, artifact: Artifact) -> Result[None, ArtifactStoreError]:
        bad = _check_key(key)
        if bad is not None:
            return Err(bad)

        slot = self._root / key
        try:
            if slot.exists():
                shutil.rmtree(slot)
            copy_file(artifact.path, slot / artifact.path.name)
        except OSError as e:
            return Err(ArtifactStoreError(key=key, message=f"upload failed: {e}"))
        return Ok(None)

    def get(self, key: str, dest_dir: Path) -> Result[Path, ArtifactStoreError]:
        bad = _check_key(key)
        if bad is not None:
            return Err(bad)

        slot = self._root / key
        if not slot.is_dir():
            return Err(ArtifactStoreError(key=key, message="artifact not found"))

        files = [p for p in slot.iterdir() if p.is_file()]
        if len(files) != 1:
            return Err(
                ArtifactStoreError(
                    key=key, message=f"expected exactly one file, found {len(files)}"
                )
            )

        try:
            return Ok(copy_file(files[0], dest_dir / files[0].name))
        except OSError as e:
            return Err(ArtifactStoreError(key=key, message=f"download failed: {e}"))

    def keys(self) -> tuple[str, ...]:
        if not self._root.is_dir():
            return ()
        return tuple(sorted(p.name for p in self._root.iterdir() if p.is_dir()))


class MemoryArtifactRepository:
    """In-process repository holding file contents in memory."""

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[str, bytes]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, artifact: Artifact) -> Result[None, ArtifactStoreError]:
        bad = _check_key(key)
        if bad is not None:
            return Err(bad)
        try:
            data = artifact.path.read_bytes()
        except OSError as e:
            return Err(ArtifactStoreError(key=key, message=f"upload failed: {e}"))
        with self._lock:
            self._blobs[key] = (artifact.path.name, data)
        return Ok(None)

    def get(self, key: str, dest_dir: Path) -> Result[Path, ArtifactStoreError]:
        with self._lock:
            entry = self._blobs.get(key)
        if entry is None:
            return Err(ArtifactStoreError(key=key, message="artifact not found"))

        filename, data = entry
        dest = dest_dir / filename
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
            dest.chmod(0o755)
        except OSError as e:
            return Err(ArtifactStoreError(key=key, message=f"download failed: {e}"))
        return Ok(dest)

    def discard(self, key: str) -> None:
        """Drop a stored artifact (simulates a lost upload)."""
        with self._lock:
            self._blobs.pop(key, None)

    def keys(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._blobs))
