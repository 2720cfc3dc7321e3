"""Release pipeline: matrix, provisioning, build, composition, publishing."""

from .matrix import TargetMatrix, default_matrix, matrix_from_config
from .model import Artifact, BuildEnv, InstanceOutcome, ReleaseBundle, TargetSpec
from .orchestrator import Orchestrator, PipelineInstance, require_all
from .trigger import TriggerEvent, resolve_tag

__all__ = [
    # matrix
    "TargetMatrix",
    "default_matrix",
    "matrix_from_config",
    # model
    "Artifact",
    "BuildEnv",
    "InstanceOutcome",
    "ReleaseBundle",
    "TargetSpec",
    # orchestrator
    "Orchestrator",
    "PipelineInstance",
    "require_all",
    # trigger
    "TriggerEvent",
    "resolve_tag",
]
