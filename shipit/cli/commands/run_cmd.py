"""Run command - the whole pipeline in one process."""

from __future__ import annotations

import typer

from shipit.cli.commands._helpers import (
    exit_on_pipeline_error,
    make_instance,
    print_target_plan,
    release_tag,
    trigger_from_args,
)
from shipit.cli.context import build_context
from shipit.core.result import Err, Ok
from shipit.pipeline.artifacts import DirectoryArtifactRepository
from shipit.pipeline.compose import ReleaseComposer
from shipit.pipeline.orchestrator import Orchestrator
from shipit.pipeline.publish import GhReleasePublisher


def run(
    tag: str | None = typer.Option(None, "--tag", help="Release tag, e.g. v0.1.0"),
    from_env: bool = typer.Option(
        False, "--from-env", help="Read the tag from the GitHub Actions event"
    ),
    jobs: int | None = typer.Option(
        None, "--jobs", "-j", min=1, help="Parallel instances (default: one per target)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the plan without running it"),
) -> None:
    """Build every target in parallel on this host, then publish the release.

    Every target must build on the current host, so define a single-host
    matrix in shipit.toml. The default matrix is built per runner in CI.
    """
    ctx = build_context()
    event = trigger_from_args(ctx, tag=tag, from_env=from_env)

    if dry_run:
        resolved = release_tag(ctx, event)
        ctx.console.header(f"Release {resolved}: {len(ctx.matrix)} targets")
        for target in ctx.matrix:
            print_target_plan(ctx, target)
        return

    repository = DirectoryArtifactRepository(ctx.artifacts_dir)
    orchestrator = Orchestrator(
        matrix=ctx.matrix,
        make_instance=lambda target, console: make_instance(ctx, target, console, repository),
        composer=ReleaseComposer(
            tool=ctx.config.project.tool,
            repository=repository,
            release_dir=ctx.release_dir,
            console=ctx.console,
        ),
        publisher=GhReleasePublisher(
            workspace_root=ctx.workspace_root,
            console=ctx.console,
            repo=ctx.config.project.repo,
        ),
        console=ctx.console,
        max_workers=jobs,
        host=ctx.host,
    )

    match orchestrator.run(event):
        case Ok(published):
            ctx.console.success(published.url or published.tag)
        case Err(error):
            exit_on_pipeline_error(error, ctx)
