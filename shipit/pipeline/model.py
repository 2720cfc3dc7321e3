"""Value objects flowing through the pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from shipit.core.result import Ok, Result
from shipit.pipeline.errors import InstanceError
from shipit.pipeline.hosts import infer_host, runner_labels
from shipit.pipeline.triple import Triple, parse_triple
from shipit.platform.detection import HostInfo

__all__ = [
    "Artifact",
    "BuildEnv",
    "InstanceOutcome",
    "PublishedRelease",
    "ReleaseBundle",
    "TargetSpec",
]


@dataclass(frozen=True, slots=True)
class TargetSpec:
    """One entry of the build matrix.

    Attributes:
        name: Unique target name (e.g. "linux-arm64")
        execution_host: Runner label, or a tuple of pool tags
        compiler_triple: Compiler target triple
        platform_label: Short platform label used for recipe matching
        file_extension: Binary extension (".exe" on Windows, else empty)
    """

    name: str
    execution_host: str | tuple[str, ...]
    compiler_triple: str
    platform_label: str
    file_extension: str = ""

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("target name cannot be empty")
        if not runner_labels(self.execution_host):
            raise ValueError(f"target {self.name} has no execution host")
        if parse_triple(self.compiler_triple) is None:
            raise ValueError(
                f"target {self.name}: unsupported compiler triple {self.compiler_triple!r}"
            )
        if self.file_extension and not self.file_extension.startswith("."):
            raise ValueError(f"target {self.name}: extension must start with '.'")

    @property
    def triple(self) -> Triple:
        triple = parse_triple(self.compiler_triple)
        assert triple is not None
        return triple

    @property
    def host(self) -> HostInfo:
        """The host OS/arch the execution host provides."""
        return infer_host(self.execution_host)

    @property
    def is_cross(self) -> bool:
        """True when the binary's OS differs from the build host's OS."""
        return self.triple.platform != self.host.platform

    def binary_name(self, tool: str) -> str:
        return f"{tool}{self.file_extension}"


@dataclass(frozen=True, slots=True)
class BuildEnv:
    """Explicit per-instance environment overlay.

    The overlay is merged over a copy of the base environment when a command
    runs; the process environment itself is never modified.
    """

    variables: tuple[tuple[str, str], ...] = ()

    def get(self, name: str) -> str | None:
        for key, value in self.variables:
            if key == name:
                return value
        return None

    def with_vars(self, *pairs: tuple[str, str]) -> BuildEnv:
        """Return a copy with pairs added; later values win."""
        merged = dict(self.variables)
        merged.update(pairs)
        return BuildEnv(variables=tuple(merged.items()))

    def apply(self, base: Mapping[str, str]) -> dict[str, str]:
        env = dict(base)
        env.update(self.variables)
        return env


@dataclass(frozen=True, slots=True)
class Artifact:
    """The binary produced for one target."""

    target_name: str
    path: Path
    sha256: str


@dataclass(frozen=True, slots=True)
class InstanceOutcome:
    """Terminal state of one pipeline instance."""

    target: TargetSpec
    result: Result[Artifact, InstanceError]

    @property
    def succeeded(self) -> bool:
        return isinstance(self.result, Ok)


@dataclass(frozen=True, slots=True)
class ReleaseBundle:
    """The complete, canonically named file set of one release.

    Raises:
        ValueError: On an empty tag, no files or duplicate filenames.
    """

    tag: str
    files: tuple[Path, ...]
    prerelease: bool = True
    draft: bool = False

    def __post_init__(self) -> None:
        if not self.tag:
            raise ValueError("release tag cannot be empty")
        if not self.files:
            raise ValueError("release bundle has no files")
        names = [f.name for f in self.files]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate release filenames: {names}")

    @classmethod
    def for_matrix(cls, tag: str, files: tuple[Path, ...], matrix_size: int) -> ReleaseBundle:
        """Build a bundle that must hold exactly one file per matrix target."""
        if len(files) != matrix_size:
            raise ValueError(
                f"release bundle needs {matrix_size} files, got {len(files)}"
            )
        return cls(tag=tag, files=files)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.files)


@dataclass(frozen=True, slots=True)
class PublishedRelease:
    tag: str
    files: tuple[str, ...]
    created: bool
    url: str | None = None
