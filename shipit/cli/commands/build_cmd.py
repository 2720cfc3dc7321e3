"""Per-target commands - provision a host and build one matrix target."""

from __future__ import annotations

import typer

from shipit.cli.commands._helpers import (
    exit_on_pipeline_error,
    make_instance,
    make_provisioner,
    print_target_plan,
    require_target,
)
from shipit.cli.context import build_context
from shipit.core.result import Err, Ok
from shipit.pipeline.artifacts import DirectoryArtifactRepository


def provision(
    name: str = typer.Argument(..., help="Target name (see `shipit matrix`)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them"),
) -> None:
    """Install the toolchain a target needs and print its build environment."""
    ctx = build_context()
    target = require_target(ctx, name)

    if dry_run:
        print_target_plan(ctx, target)
        return

    match make_provisioner(ctx, ctx.console).provision(target):
        case Ok(env):
            # KEY=VALUE lines, suitable for appending to $GITHUB_ENV
            for key, value in env.variables:
                typer.echo(f"{key}={value}")
        case Err(error):
            exit_on_pipeline_error(error, ctx)


def build(
    name: str = typer.Argument(..., help="Target name (see `shipit matrix`)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them"),
) -> None:
    """Provision, build and store the artifact of one target."""
    ctx = build_context()
    target = require_target(ctx, name)

    if dry_run:
        print_target_plan(ctx, target)
        return

    repository = DirectoryArtifactRepository(ctx.artifacts_dir)
    outcome = make_instance(ctx, target, ctx.console, repository).run()
    match outcome.result:
        case Ok(artifact):
            ctx.console.success(str(artifact.path))
        case Err(error):
            exit_on_pipeline_error(error, ctx)
