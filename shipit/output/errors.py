"""Error presentation utilities.

Centralized formatting and exit code mapping for pipeline errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shipit.core.errors import ErrorCode
from shipit.output.console import Style
from shipit.pipeline.errors import (
    ArtifactStoreError,
    BarrierError,
    BuildError,
    InstanceIOError,
    MatrixError,
    MissingArtifactError,
    PipelineError,
    ProvisionError,
    PublishError,
    RecipeError,
    StagingError,
    TriggerError,
)

if TYPE_CHECKING:
    from shipit.output.console import ConsoleProtocol

__all__ = ["pipeline_error_exit_code", "print_pipeline_error"]


def _hint(console: ConsoleProtocol, hint: str | None) -> None:
    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    """Print a pipeline error with appropriate formatting."""
    match error:
        case TriggerError(message=message, hint=hint):
            console.error(message)
            _hint(console, hint)
        case MatrixError(message=message, target=target):
            console.error(f"invalid matrix: {message}" + (f" ({target})" if target else ""))
        case RecipeError():
            console.error(error.message)
        case ProvisionError(target=target, step=step, message=message, hint=hint):
            console.error(f"{target}: provisioning failed at {step}: {message}")
            _hint(console, hint)
        case BuildError(target=target, message=message):
            console.error(f"{target}: {message}")
        case ArtifactStoreError(key=key, message=message):
            console.error(f"artifact {key}: {message}")
        case InstanceIOError(target=target, message=message):
            console.error(f"{target}: {message}")
        case BarrierError(failures=failures, total=total):
            console.error(f"{len(failures)} of {total} targets failed; release skipped")
            for _, failure in failures:
                print_pipeline_error(failure, console)
        case MissingArtifactError(target=target, key=key, reason=reason):
            console.error(f"missing artifact {key} for {target}: {reason}")
        case StagingError(path=path, message=message):
            console.error(f"cannot stage {path}: {message}")
        case PublishError(tag=tag, message=message, hint=hint):
            console.error(f"publish {tag} failed: {message}")
            _hint(console, hint)


def pipeline_error_exit_code(error: PipelineError) -> int:
    """Get exit code for a pipeline error."""
    match error:
        case TriggerError() | MatrixError():
            return int(ErrorCode.USER_ERROR)
        case RecipeError() | ProvisionError():
            return int(ErrorCode.ENV_ERROR)
        case BuildError() | BarrierError():
            return int(ErrorCode.BUILD_ERROR)
        case ArtifactStoreError() | MissingArtifactError():
            return int(ErrorCode.ARTIFACT_ERROR)
        case PublishError():
            return int(ErrorCode.PUBLISH_ERROR)
        case StagingError() | InstanceIOError():
            return int(ErrorCode.IO_ERROR)
