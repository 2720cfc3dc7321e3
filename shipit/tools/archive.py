"""Zip archive extraction for toolchain installs.

Unlike a full unpack, extraction can be limited to selected members (protoc
ships `bin/protoc` and `include/*`, nothing else is wanted) and never wipes
the destination, because toolchain directories are shared install prefixes.
"""

from __future__ import annotations

import stat
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from shipit.core.result import Err, Ok, Result

__all__ = ["ExtractError", "ExtractResult", "extract_zip"]


@dataclass(frozen=True, slots=True)
class ExtractError:
    """Extraction error details."""

    archive: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message}: {self.archive}"


@dataclass(frozen=True, slots=True)
class ExtractResult:
    """Files written by an extraction, relative to the destination."""

    dest: Path
    files: tuple[str, ...]


def _safe_relative_path(member_name: str) -> PurePosixPath | None:
    """Return a sanitized relative member path, or None if unsafe."""
    normalized = member_name.replace("\\", "/")
    if normalized.startswith("/"):
        return None
    posix = PurePosixPath(normalized)
    if not posix.parts:
        return None
    if any(part in {"", ".", ".."} for part in posix.parts):
        return None
    if posix.parts[0].endswith(":"):
        return None
    return posix


def _selected(path: PurePosixPath, members: tuple[str, ...] | None) -> bool:
    """Check a member against exact names or `dir/` prefixes."""
    if members is None:
        return True
    text = path.as_posix()
    for pattern in members:
        if pattern.endswith("/"):
            if text.startswith(pattern):
                return True
        elif text == pattern:
            return True
    return False


def extract_zip(
    archive: Path,
    dest: Path,
    *,
    members: tuple[str, ...] | None = None,
) -> Result[ExtractResult, ExtractError]:
    """Extract (selected members of) a zip archive, overwriting existing files.

    Args:
        archive: Path to the .zip file
        dest: Destination directory (created if missing, never cleared)
        members: Exact member names or `prefix/` entries to keep; None keeps all

    Returns:
        Ok with the extracted file list, or Err if nothing matched or the
        archive is unreadable.
    """
    if not archive.exists():
        return Err(ExtractError(archive=archive, message="Archive not found"))

    written: list[str] = []
    try:
        dest.mkdir(parents=True, exist_ok=True)
        root = dest.resolve()

        with zipfile.ZipFile(archive, "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue

                rel = _safe_relative_path(info.filename)
                if rel is None or not _selected(rel, members):
                    continue

                unix_attrs = info.external_attr >> 16
                if (unix_attrs & 0o170000) == stat.S_IFLNK:
                    continue

                target = dest / Path(*rel.parts)
                if not target.resolve().is_relative_to(root):
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as out:
                    while chunk := src.read(64 * 1024):
                        out.write(chunk)

                mode = unix_attrs & 0o777
                if mode:
                    target.chmod(mode)

                written.append(rel.as_posix())

    except zipfile.BadZipFile as e:
        return Err(ExtractError(archive=archive, message=f"Invalid zip file: {e}"))
    except OSError as e:
        return Err(ExtractError(archive=archive, message=f"IO error: {e}"))

    if not written:
        return Err(ExtractError(archive=archive, message="No matching members in archive"))

    return Ok(ExtractResult(dest=dest, files=tuple(sorted(written))))
