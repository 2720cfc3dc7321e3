"""Release composition: fetch every artifact, rename, bundle.

All artifacts are fetched before anything is renamed, and the bundle is only
built when every matrix target has its file. A missing artifact stops
composition before the publisher is ever called.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from shipit.core.result import Err, Ok, Result
from shipit.output.console import ConsoleProtocol, Style
from shipit.pipeline.artifacts import ArtifactRepository
from shipit.pipeline.errors import (
    ComposeError,
    MissingArtifactError,
    PublishError,
    StagingError,
)
from shipit.pipeline.matrix import TargetMatrix
from shipit.pipeline.model import PublishedRelease, ReleaseBundle
from shipit.pipeline.naming import artifact_key, canonical_name
from shipit.pipeline.publish import ReleasePublisher

__all__ = ["ReleaseComposer"]


class ReleaseComposer:
    """Assembles and publishes the release of one tag."""

    def __init__(
        self,
        *,
        tool: str,
        repository: ArtifactRepository,
        release_dir: Path,
        console: ConsoleProtocol,
    ) -> None:
        self._tool = tool
        self._repository = repository
        self._release_dir = release_dir
        self._console = console

    def output_dir(self, tag: str) -> Path:
        return self._release_dir / tag

    def compose(self, tag: str, matrix: TargetMatrix) -> Result[ReleaseBundle, ComposeError]:
        """Fetch and rename every target's artifact into `<release_dir>/<tag>/`."""
        out_dir = self.output_dir(tag)
        staging = out_dir / ".staging"
        try:
            if out_dir.exists():
                shutil.rmtree(out_dir)
            staging.mkdir(parents=True)
        except OSError as e:
            return Err(StagingError(path=out_dir, message=str(e)))

        fetched: list[tuple[Path, str]] = []
        for target in matrix:
            key = artifact_key(self._tool, target)
            result = self._repository.get(key, staging / key)
            if isinstance(result, Err):
                return Err(
                    MissingArtifactError(target=target.name, key=key, reason=result.error.message)
                )
            expected = target.binary_name(self._tool)
            if result.value.name != expected:
                return Err(
                    MissingArtifactError(
                        target=target.name,
                        key=key,
                        reason=f"expected {expected}, found {result.value.name}",
                    )
                )
            fetched.append((result.value, canonical_name(self._tool, target)))
            self._console.print(f"fetched {key}", Style.DIM)

        files: list[Path] = []
        for src, public_name in fetched:
            dest = out_dir / public_name
            try:
                shutil.move(src, dest)
            except OSError as e:
                return Err(StagingError(path=dest, message=str(e)))
            files.append(dest)
            self._console.print(f"{src.parent.name} -> {public_name}", Style.DIM)

        shutil.rmtree(staging, ignore_errors=True)
        return Ok(ReleaseBundle.for_matrix(tag, tuple(files), len(matrix)))

    def compose_and_publish(
        self,
        tag: str,
        matrix: TargetMatrix,
        publisher: ReleasePublisher,
    ) -> Result[PublishedRelease, ComposeError | PublishError]:
        bundle = self.compose(tag, matrix)
        if isinstance(bundle, Err):
            return bundle
        return publisher.publish(bundle.value)
