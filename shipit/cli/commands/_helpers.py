"""Shared helpers for CLI commands."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, NoReturn

import typer

from shipit.core.errors import ErrorCode
from shipit.core.result import Err, Ok
from shipit.output.console import Style
from shipit.output.errors import pipeline_error_exit_code, print_pipeline_error
from shipit.pipeline.artifacts import ArtifactRepository
from shipit.pipeline.build import BuildExecutor
from shipit.pipeline.naming import canonical_name
from shipit.pipeline.orchestrator import PipelineInstance
from shipit.pipeline.provision import Provisioner
from shipit.pipeline.trigger import TriggerEvent, resolve_tag
from shipit.tools.http import RealHttpClient

if TYPE_CHECKING:
    from shipit.cli.context import CLIContext
    from shipit.output.console import ConsoleProtocol
    from shipit.pipeline.errors import PipelineError
    from shipit.pipeline.model import TargetSpec


def exit_on_pipeline_error(error: PipelineError, ctx: CLIContext) -> NoReturn:
    print_pipeline_error(error, ctx.console)
    raise typer.Exit(code=pipeline_error_exit_code(error))


def require_target(ctx: CLIContext, name: str) -> TargetSpec:
    target = ctx.matrix.get(name)
    if target is None:
        ctx.console.error(f"Unknown target: {name}")
        ctx.console.print(f"Available: {', '.join(ctx.matrix.names)}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return target


def trigger_from_args(ctx: CLIContext, *, tag: str | None, from_env: bool) -> TriggerEvent:
    """Build the trigger event from `--tag` or the GitHub Actions environment."""
    if from_env == (tag is not None):
        ctx.console.error("pass exactly one of --tag or --from-env")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    if not from_env:
        return TriggerEvent.manual(tag)
    match TriggerEvent.from_github_env(os.environ):
        case Ok(event):
            return event
        case Err(error):
            exit_on_pipeline_error(error, ctx)


def release_tag(ctx: CLIContext, event: TriggerEvent) -> str:
    match resolve_tag(event):
        case Ok(tag):
            return tag
        case Err(error):
            exit_on_pipeline_error(error, ctx)


def make_provisioner(ctx: CLIContext, console: ConsoleProtocol) -> Provisioner:
    return Provisioner(
        workspace_root=ctx.workspace_root,
        work_dir=ctx.work_dir,
        toolchain=ctx.config.toolchain,
        http=RealHttpClient(),
        console=console,
        host=ctx.host,
    )


def make_instance(
    ctx: CLIContext,
    target: TargetSpec,
    console: ConsoleProtocol,
    repository: ArtifactRepository,
) -> PipelineInstance:
    return PipelineInstance(
        target=target,
        tool=ctx.config.project.tool,
        work_dir=ctx.work_dir,
        provisioner=make_provisioner(ctx, console),
        builder=BuildExecutor(
            source_dir=ctx.source_dir, tool=ctx.config.project.tool, console=console
        ),
        repository=repository,
        console=console,
    )


def print_target_plan(ctx: CLIContext, target: TargetSpec) -> None:
    """Print what provisioning and building a target would do."""
    ctx.console.header(f"{target.name} ({target.compiler_triple})")
    match make_provisioner(ctx, ctx.console).plan(target):
        case Ok(steps):
            for step in steps:
                ctx.console.print(f"- {step.describe()}", Style.DIM)
        case Err(error):
            exit_on_pipeline_error(error, ctx)
    tool = ctx.config.project.tool
    builder = BuildExecutor(source_dir=ctx.source_dir, tool=tool, console=ctx.console)
    ctx.console.print(f"- {' '.join(builder.command(target))}", Style.DIM)
    ctx.console.print(f"- publish as {canonical_name(tool, target)}", Style.DIM)
