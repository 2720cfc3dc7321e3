"""Artifact keys and public release filenames."""

from __future__ import annotations

from pathlib import Path

from shipit.pipeline.model import TargetSpec
from shipit.platform.detection import Platform


def artifact_key(tool: str, target: TargetSpec) -> str:
    """Repository key of a target's artifact, e.g. `tool-x86_64-apple-darwin`."""
    return f"{tool}-{target.compiler_triple}"


def canonical_name(tool: str, target: TargetSpec) -> str:
    """Public release filename for a target.

    `<tool>-<arch>-<os>` for Unix targets, `<tool><ext>` for Windows.
    """
    triple = target.triple
    if triple.platform == Platform.WINDOWS:
        return target.binary_name(tool)
    return f"{tool}-{triple.arch}-{triple.public_os}"


def instance_dir(work_dir: Path, target: TargetSpec) -> Path:
    """Private working directory of a target's pipeline instance."""
    return work_dir / "instances" / target.name
