"""Fan-out/fan-in orchestration of the release pipeline.

    trigger -> [instance per target, in parallel] -> all-success barrier
            -> composer -> publisher

Instances share nothing but the artifact repository, which they write under
their own key. A failed instance never cancels its siblings; it only makes the
barrier fail, so the release stage does not run. Every step runs once.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from shipit.core.result import Err, Ok, Result
from shipit.output.console import ConsoleProtocol, PrefixedConsole
from shipit.pipeline.artifacts import ArtifactRepository
from shipit.pipeline.build import BuildExecutor
from shipit.pipeline.compose import ReleaseComposer
from shipit.pipeline.errors import (
    BarrierError,
    InstanceError,
    InstanceIOError,
    PipelineError,
)
from shipit.pipeline.matrix import TargetMatrix
from shipit.pipeline.model import Artifact, InstanceOutcome, PublishedRelease, TargetSpec
from shipit.pipeline.naming import artifact_key, instance_dir
from shipit.pipeline.provision import Provisioner
from shipit.pipeline.publish import ReleasePublisher
from shipit.pipeline.trigger import TriggerEvent, resolve_tag
from shipit.platform.detection import HostInfo

__all__ = [
    "InstanceFactory",
    "Orchestrator",
    "PipelineInstance",
    "require_all",
]


@dataclass(frozen=True, slots=True)
class PipelineInstance:
    """Provision, build and upload one target."""

    target: TargetSpec
    tool: str
    work_dir: Path
    provisioner: Provisioner
    builder: BuildExecutor
    repository: ArtifactRepository
    console: ConsoleProtocol

    def run(self) -> InstanceOutcome:
        try:
            result = self._run()
        except OSError as e:
            result = Err(InstanceIOError(target=self.target.name, message=str(e)))
        return InstanceOutcome(target=self.target, result=result)

    def _run(self) -> Result[Artifact, InstanceError]:
        self.console.header(f"{self.target.name} ({self.target.compiler_triple})")

        env = self.provisioner.provision(self.target)
        if isinstance(env, Err):
            return env

        target_dir = instance_dir(self.work_dir, self.target) / "target"
        artifact = self.builder.build(self.target, env.value, target_dir=target_dir)
        if isinstance(artifact, Err):
            return artifact

        key = artifact_key(self.tool, self.target)
        stored = self.repository.put(key, artifact.value)
        if isinstance(stored, Err):
            return stored

        self.console.success(f"{key} ({artifact.value.sha256[:12]})")
        return artifact


InstanceFactory = Callable[[TargetSpec, ConsoleProtocol], PipelineInstance]


def require_all(outcomes: Sequence[InstanceOutcome]) -> Result[tuple[Artifact, ...], BarrierError]:
    """All-success barrier over instance outcomes.

    Ok only when every instance produced an artifact; otherwise a BarrierError
    listing every failed target.
    """
    artifacts: list[Artifact] = []
    failures: list[tuple[str, InstanceError]] = []
    for outcome in outcomes:
        match outcome.result:
            case Ok(artifact):
                artifacts.append(artifact)
            case Err(error):
                failures.append((outcome.target.name, error))
    if failures or not outcomes:
        return Err(BarrierError(failures=tuple(failures), total=len(outcomes)))
    return Ok(tuple(artifacts))


class Orchestrator:
    """Runs the matrix in one process.

    With `host` set, every target must be buildable on that host; otherwise
    the run is rejected before any instance starts.
    """

    def __init__(
        self,
        *,
        matrix: TargetMatrix,
        make_instance: InstanceFactory,
        composer: ReleaseComposer,
        publisher: ReleasePublisher,
        console: ConsoleProtocol,
        max_workers: int | None = None,
        host: HostInfo | None = None,
    ) -> None:
        self._matrix = matrix
        self._make_instance = make_instance
        self._composer = composer
        self._publisher = publisher
        self._console = console
        self._max_workers = max_workers or len(matrix)
        self._host = host

    def run_instance(self, target: TargetSpec) -> InstanceOutcome:
        return self._make_instance(target, PrefixedConsole(self._console, target.name)).run()

    def run_matrix(self) -> tuple[InstanceOutcome, ...]:
        """Run one instance per target in parallel; outcomes keep matrix order."""
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="shipit"
        ) as pool:
            return tuple(pool.map(self.run_instance, self._matrix.expand()))

    def release(
        self, tag: str, outcomes: Sequence[InstanceOutcome]
    ) -> Result[PublishedRelease, PipelineError]:
        """Release stage: runs only if the barrier passes."""
        gate = require_all(outcomes)
        if isinstance(gate, Err):
            return gate
        return self._composer.compose_and_publish(tag, self._matrix, self._publisher)

    def run(self, event: TriggerEvent) -> Result[PublishedRelease, PipelineError]:
        """Run the whole pipeline for one trigger event."""
        tag = resolve_tag(event)
        if isinstance(tag, Err):
            return tag
        if self._host is not None:
            runnable = self._matrix.check_host(self._host)
            if isinstance(runnable, Err):
                return runnable

        self._console.header(f"Release {tag.value}: {len(self._matrix)} targets")
        outcomes = self.run_matrix()
        for outcome in outcomes:
            if not outcome.succeeded:
                self._console.error(f"{outcome.target.name}: failed")
        return self.release(tag.value, outcomes)
