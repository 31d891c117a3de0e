"""Schema inspection command."""

import json
from typing import Optional

import typer

from ..schema import plain_spec
from ..utils import load_schema


def attributes_command(
    schema_ref: str = typer.Argument(..., help="Schema class (e.g., app.schemas:UserParams)"),
    action: Optional[str] = typer.Option(None, "--action", "-a", help="Action used for only/except filtering"),
    describe: bool = typer.Option(False, "--describe", help="Print the full schema configuration"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Project root to add to sys.path (default: cwd)"),
):
    """Print the permitted attributes of a schema as JSON."""
    try:
        schema = load_schema(schema_ref, project_root=project_root)
    except (ModuleNotFoundError, AttributeError, ValueError, TypeError) as e:
        typer.echo(f"Error: Could not load schema '{schema_ref}': {e}", err=True)
        raise typer.Exit(1)

    if describe:
        payload = schema.describe()
    else:
        payload = plain_spec(schema.permitted_attributes(action))

    typer.echo(json.dumps(payload, indent=2, default=str))
