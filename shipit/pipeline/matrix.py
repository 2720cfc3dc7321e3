"""The static target matrix.

The matrix is fixed when the pipeline is defined: either the built-in
five-target default or the [[targets]] tables of shipit.toml. It is validated
once, before any instance starts.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from shipit.core.config import Config, TargetConfig
from shipit.core.result import Err, Ok, Result
from shipit.pipeline.errors import MatrixError
from shipit.pipeline.model import TargetSpec
from shipit.pipeline.naming import canonical_name
from shipit.platform.detection import HostInfo

__all__ = ["DEFAULT_TARGETS", "TargetMatrix", "default_matrix", "matrix_from_config"]

# Placeholder used to check filename collisions independent of the tool name.
_PROBE_TOOL = "tool"

DEFAULT_TARGETS: tuple[TargetSpec, ...] = (
    TargetSpec(
        name="linux-amd64",
        execution_host="ubuntu-20.04",
        compiler_triple="x86_64-unknown-linux-gnu",
        platform_label="amd64",
    ),
    TargetSpec(
        name="linux-arm64",
        execution_host=("self-hosted", "Linux", "ARM64"),
        compiler_triple="aarch64-unknown-linux-gnu",
        platform_label="arm64",
    ),
    TargetSpec(
        name="macos-amd64",
        execution_host="macos-13",
        compiler_triple="x86_64-apple-darwin",
        platform_label="mac-x86",
    ),
    TargetSpec(
        name="macos-arm64",
        execution_host="macos-latest",
        compiler_triple="aarch64-apple-darwin",
        platform_label="mac-arm",
    ),
    TargetSpec(
        name="Windows",
        execution_host="ubuntu-20.04",
        compiler_triple="x86_64-pc-windows-gnu",
        platform_label="windows",
        file_extension=".exe",
    ),
)


@dataclass(frozen=True, slots=True)
class TargetMatrix:
    """Validated, ordered, immutable set of targets.

    Construct through `TargetMatrix.create()`, which enforces unique names and
    collision-free public filenames.
    """

    targets: tuple[TargetSpec, ...]

    @classmethod
    def create(cls, targets: Iterable[TargetSpec]) -> Result[TargetMatrix, MatrixError]:
        items = tuple(targets)
        if not items:
            return Err(MatrixError("target matrix is empty"))

        seen: set[str] = set()
        for target in items:
            if target.name in seen:
                return Err(MatrixError(f"duplicate target name: {target.name}", target=target.name))
            seen.add(target.name)

        published: dict[str, str] = {}
        for target in items:
            name = canonical_name(_PROBE_TOOL, target)
            if target.compiler_triple in name:
                return Err(
                    MatrixError(
                        f"public filename {name} leaks the compiler triple",
                        target=target.name,
                    )
                )
            other = published.get(name)
            if other is not None:
                return Err(
                    MatrixError(
                        f"targets {other} and {target.name} publish the same filename",
                        target=target.name,
                    )
                )
            published[name] = target.name

        return Ok(cls(targets=items))

    def expand(self) -> tuple[TargetSpec, ...]:
        return self.targets

    def get(self, name: str) -> TargetSpec | None:
        for target in self.targets:
            if target.name == name:
                return target
        return None

    def check_host(self, host: HostInfo) -> Result[None, MatrixError]:
        """Fail unless every target can be built on host."""
        foreign = [f"{t.name} ({t.host})" for t in self.targets if t.host != host]
        if foreign:
            return Err(
                MatrixError(f"targets need a host other than {host}: {', '.join(foreign)}")
            )
        return Ok(None)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(t.name for t in self.targets)

    def __len__(self) -> int:
        return len(self.targets)

    def __iter__(self) -> Iterator[TargetSpec]:
        return iter(self.targets)

    def to_ci_matrix(self) -> dict[str, object]:
        """Render as a GitHub Actions `strategy.matrix` object."""
        include: list[dict[str, object]] = []
        for t in self.targets:
            entry: dict[str, object] = {
                "name": t.name,
                "runs-on": t.execution_host
                if isinstance(t.execution_host, str)
                else list(t.execution_host),
                "target": t.compiler_triple,
                "platform": t.platform_label,
            }
            if t.file_extension:
                entry["ext"] = t.file_extension
            include.append(entry)
        return {"include": include}

    def to_ci_json(self) -> str:
        return json.dumps(self.to_ci_matrix(), separators=(",", ":"))


def default_matrix() -> TargetMatrix:
    result = TargetMatrix.create(DEFAULT_TARGETS)
    assert isinstance(result, Ok), result
    return result.value


def _target_from_config(entry: TargetConfig) -> Result[TargetSpec, MatrixError]:
    host: str | tuple[str, ...] = entry.runs_on[0] if len(entry.runs_on) == 1 else entry.runs_on
    try:
        return Ok(
            TargetSpec(
                name=entry.name,
                execution_host=host,
                compiler_triple=entry.target,
                platform_label=entry.platform,
                file_extension=entry.ext,
            )
        )
    except ValueError as e:
        return Err(MatrixError(str(e), target=entry.name))


def matrix_from_config(config: Config) -> Result[TargetMatrix, MatrixError]:
    """Build the matrix from [[targets]], or the default when none are set."""
    if not config.targets:
        return Ok(default_matrix())

    specs: list[TargetSpec] = []
    for entry in config.targets:
        spec = _target_from_config(entry)
        if isinstance(spec, Err):
            return spec
        specs.append(spec.value)
    return TargetMatrix.create(specs)
