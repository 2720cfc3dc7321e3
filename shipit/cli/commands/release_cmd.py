"""Release command - compose stored artifacts and publish them."""

from __future__ import annotations

import typer

from shipit.cli.commands._helpers import exit_on_pipeline_error, release_tag, trigger_from_args
from shipit.cli.context import build_context
from shipit.core.result import Err, Ok
from shipit.pipeline.artifacts import DirectoryArtifactRepository
from shipit.pipeline.compose import ReleaseComposer
from shipit.pipeline.publish import GhReleasePublisher


def release(
    tag: str | None = typer.Option(None, "--tag", help="Release tag, e.g. v0.1.0"),
    from_env: bool = typer.Option(
        False, "--from-env", help="Read the tag from the GitHub Actions event"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Compose locally, print the gh command instead of publishing"
    ),
) -> None:
    """Publish every target's artifact as one prerelease."""
    ctx = build_context()
    resolved = release_tag(ctx, trigger_from_args(ctx, tag=tag, from_env=from_env))

    composer = ReleaseComposer(
        tool=ctx.config.project.tool,
        repository=DirectoryArtifactRepository(ctx.artifacts_dir),
        release_dir=ctx.release_dir,
        console=ctx.console,
    )
    publisher = GhReleasePublisher(
        workspace_root=ctx.workspace_root,
        console=ctx.console,
        repo=ctx.config.project.repo,
        dry_run=dry_run,
    )

    match composer.compose_and_publish(resolved, ctx.matrix, publisher):
        case Ok(published):
            if published.url:
                ctx.console.success(published.url)
            else:
                ctx.console.success(f"{published.tag}: {len(published.files)} files")
        case Err(error):
            exit_on_pipeline_error(error, ctx)
