"""Matrix command - show or export the target matrix."""

from __future__ import annotations

import typer

from shipit.cli.context import build_context
from shipit.output.console import Style
from shipit.pipeline.hosts import runner_labels
from shipit.pipeline.naming import canonical_name


def matrix(
    json_output: bool = typer.Option(
        False, "--json", help="Print the CI job matrix as JSON (for GITHUB_OUTPUT)"
    ),
) -> None:
    """List release targets."""
    ctx = build_context()

    if json_output:
        typer.echo(ctx.matrix.to_ci_json())
        return

    tool = ctx.config.project.tool
    for target in ctx.matrix:
        ctx.console.print(f"{target.name}: {target.compiler_triple}", Style.INFO)
        labels = ", ".join(runner_labels(target.execution_host))
        ctx.console.print(f"  runs-on: {labels}", Style.DIM)
        ctx.console.print(f"  publish: {canonical_name(tool, target)}", Style.DIM)
