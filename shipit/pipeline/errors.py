"""Error taxonomy of the release pipeline.

Errors are plain values carried in Result; each stage reports its own kind
and nothing is recovered locally. Instance-level errors fail one target,
everything else fails the release.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal


@dataclass(frozen=True, slots=True)
class TriggerError:
    """The run was started without a usable release tag."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class MatrixError:
    """The target matrix definition is invalid."""

    message: str
    target: str | None = None


@dataclass(frozen=True, slots=True)
class RecipeError:
    """Zero or several provisioning recipes match a target."""

    target: str
    matches: tuple[str, ...]

    @property
    def message(self) -> str:
        if not self.matches:
            return f"no provisioning recipe matches target {self.target}"
        return f"ambiguous provisioning recipes for {self.target}: {', '.join(self.matches)}"


@dataclass(frozen=True, slots=True)
class ProvisionError:
    target: str
    step: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class BuildError:
    target: str
    kind: Literal["compile_failed", "output_missing"]
    message: str
    returncode: int | None = None


@dataclass(frozen=True, slots=True)
class ArtifactStoreError:
    """The artifact repository rejected a put or could not serve a get."""

    key: str
    message: str


@dataclass(frozen=True, slots=True)
class MissingArtifactError:
    """The composer could not retrieve an expected artifact."""

    target: str
    key: str
    reason: str


@dataclass(frozen=True, slots=True)
class StagingError:
    """Renaming a fetched artifact into the release directory failed."""

    path: Path
    message: str


@dataclass(frozen=True, slots=True)
class PublishError:
    tag: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class InstanceIOError:
    """A pipeline instance hit a filesystem error no stage reported."""

    target: str
    message: str


InstanceError = (
    RecipeError | ProvisionError | BuildError | ArtifactStoreError | InstanceIOError
)


@dataclass(frozen=True, slots=True)
class BarrierError:
    """One or more pipeline instances failed; the release stage is skipped."""

    failures: tuple[tuple[str, InstanceError], ...]
    total: int

    @property
    def failed_targets(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.failures)


ComposeError = MissingArtifactError | StagingError

PipelineError = (
    TriggerError
    | MatrixError
    | RecipeError
    | ProvisionError
    | BuildError
    | ArtifactStoreError
    | InstanceIOError
    | BarrierError
    | MissingArtifactError
    | StagingError
    | PublishError
)
