"""durable-params CLI entry point.

Provides commands for inspecting schemas and filtering parameter documents.
"""

import logging
import sys

import typer

from .attributes import attributes_command
from .permit import permit_command

app = typer.Typer(
    name="durable-params",
    help="Inspect parameter schemas and permit parameter documents",
    invoke_without_command=True,
)

app.command("attributes")(attributes_command)
app.command("permit")(permit_command)


@app.command("version")
def version():
    """Show version information."""
    from .. import __version__
    typer.echo(f"durable-params version {__version__}")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output")
):
    """Inspect parameter schemas and permit parameter documents."""
    if verbose:
        logging.basicConfig(level=logging.INFO)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        typer.echo("\nError: Missing command.", err=True)
        raise typer.Exit(1)


def cli_main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("\nAborted", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
