"""Filter a JSON or YAML parameters document through a schema."""

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from ..config import configure, configure_from_pyproject
from ..errors import MetadataNotAllowed, ParameterMissing, UnpermittedParameters
from ..parameters import ParameterTree
from ..utils import load_schema

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def load_document(path: Path) -> Any:
    """Parse ``path`` as YAML (``.yaml``/``.yml``) or JSON."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in YAML_SUFFIXES:
        return yaml.safe_load(text)
    return json.loads(text)


def parse_metadata(values: List[str]) -> Dict[str, str]:
    metadata: Dict[str, str] = {}
    for raw in values:
        if "=" not in raw:
            typer.echo(f"Warning: ignoring malformed metadata '{raw}' (expected key=value)", err=True)
            continue
        key, value = raw.split("=", 1)
        key = key.strip()
        if not key:
            typer.echo(f"Warning: metadata key missing in '{raw}'", err=True)
            continue
        metadata[key] = value.strip()
    return metadata


def permit_command(
    input_path: Path = typer.Argument(..., help="JSON or YAML document holding the raw parameters"),
    schema_ref: str = typer.Argument(..., help="Schema class (e.g., app.schemas:UserParams)"),
    require: Optional[List[str]] = typer.Option(None, "--require", "-r", help="Require this key first (repeatable, chained)"),
    action: Optional[str] = typer.Option(None, "--action", "-a", help="Action used for only/except filtering"),
    metadata: Optional[List[str]] = typer.Option(None, "--metadata", "-m", help="Call-time metadata (k=v)"),
    additional: Optional[List[str]] = typer.Option(None, "--also", help="Extra attribute to permit (repeatable)"),
    on_unpermitted: Optional[str] = typer.Option(None, "--on-unpermitted", help="Override the unpermitted policy: off, log or raise"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result here instead of stdout"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Project root to add to sys.path (default: cwd)"),
):
    """Permit the parameters in INPUT_PATH through a schema and print the result as JSON."""
    try:
        configure_from_pyproject()
        if on_unpermitted is not None:
            configure(action_on_unpermitted_parameters=on_unpermitted)
    except (tomllib.TOMLDecodeError, ValueError, TypeError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    try:
        schema = load_schema(schema_ref, project_root=project_root)
    except (ModuleNotFoundError, AttributeError, ValueError, TypeError) as e:
        typer.echo(f"Error: Could not load schema '{schema_ref}': {e}", err=True)
        raise typer.Exit(1)

    try:
        raw = load_document(input_path)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        typer.echo(f"Error: Could not read '{input_path}': {e}", err=True)
        raise typer.Exit(1)

    if not isinstance(raw, dict):
        typer.echo(f"Error: '{input_path}' must contain a mapping at the top level", err=True)
        raise typer.Exit(1)

    options: Dict[str, Any] = dict(parse_metadata(metadata or []))
    if action is not None:
        options["action"] = action
    if additional:
        options["additional_attrs"] = list(additional)

    try:
        params: Any = ParameterTree(raw)
        for key in require or []:
            params = params.require(key)
            if not isinstance(params, ParameterTree):
                typer.echo(f"Error: Required key '{key}' does not hold a mapping", err=True)
                raise typer.Exit(1)
        permitted = params.transform(schema, **options)
    except (ParameterMissing, UnpermittedParameters, MetadataNotAllowed) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    logger.info(f"Permitted {len(permitted)} of {len(params)} keys with {schema.__name__}")
    rendered = json.dumps(permitted.to_dict(), indent=2, default=str)

    if output is None:
        typer.echo(rendered)
    else:
        output.write_text(rendered + "\n", encoding="utf-8")
        typer.echo(f"✓ Wrote permitted parameters to {output}")
