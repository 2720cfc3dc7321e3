from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from shipit.core.config import CONFIG_FILENAME, Config, load_config_or_default
from shipit.core.errors import ErrorCode
from shipit.core.result import Err
from shipit.output.console import ConsoleProtocol, RichConsole
from shipit.pipeline.matrix import TargetMatrix, matrix_from_config
from shipit.platform.detection import HostInfo, detect

WORKSPACE_ENV = "SHIPIT_WORKSPACE"


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace_root: Path
    config: Config
    matrix: TargetMatrix
    host: HostInfo
    console: ConsoleProtocol

    def resolve(self, configured: str) -> Path:
        p = Path(configured).expanduser()
        return p if p.is_absolute() else self.workspace_root / p

    @property
    def source_dir(self) -> Path:
        return self.resolve(self.config.paths.source)

    @property
    def work_dir(self) -> Path:
        return self.resolve(self.config.paths.work_dir)

    @property
    def artifacts_dir(self) -> Path:
        return self.resolve(self.config.paths.artifacts)

    @property
    def release_dir(self) -> Path:
        return self.resolve(self.config.paths.release)


def workspace_root() -> Path:
    raw = os.environ.get(WORKSPACE_ENV)
    return Path(raw) if raw else Path.cwd()


def build_context() -> CLIContext:
    root = workspace_root()
    config_result = load_config_or_default(root / CONFIG_FILENAME)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    config = config_result.value

    matrix_result = matrix_from_config(config)
    if isinstance(matrix_result, Err):
        typer.echo(f"error: invalid matrix: {matrix_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        workspace_root=root,
        config=config,
        matrix=matrix_result.value,
        host=detect(),
        console=RichConsole(),
    )
