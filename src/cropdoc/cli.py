"""Cropdoc CLI - Command-line interface for the offline media queue."""

import typer

from cropdoc import __version__
from cropdoc.cli_commands.queue import queue_app

app = typer.Typer(
    name="cropdoc",
    help="Cropdoc Agent - offline capture queue for crop disease diagnosis.",
    no_args_is_help=True,
)

# Register subcommands
app.add_typer(queue_app, name="queue")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"cropdoc-agent {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Cropdoc Agent - offline capture queue."""
    pass


if __name__ == "__main__":
    app()
