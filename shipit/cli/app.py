from __future__ import annotations

import os
from pathlib import Path

import typer

from shipit import __version__
from shipit.cli.commands.build_cmd import build, provision
from shipit.cli.commands.matrix_cmd import matrix
from shipit.cli.commands.release_cmd import release
from shipit.cli.commands.run_cmd import run
from shipit.cli.context import WORKSPACE_ENV
from shipit.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(matrix)
app.command()(provision)
app.command()(build)
app.command()(release)
app.command()(run)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    workspace: Path | None = typer.Option(
        None,
        "--workspace",
        help="Project root holding shipit.toml (default: current directory)",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if workspace is not None:
        try:
            root = workspace.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --workspace: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir():
            typer.echo(f"error: --workspace '{root}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        os.environ[WORKSPACE_ENV] = str(root)


def main() -> None:
    app()
