"""Resolve schema references given on the command line.

Two forms are accepted:

- ``app.schemas:UserParams`` imports ``app.schemas``; when it is not
  importable as installed, the project root (default: cwd) is searched too
- ``path/to/schemas.py:UserParams`` executes the file as a fresh module
"""

import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Optional


def _is_file_reference(module_part: str) -> bool:
    return module_part.endswith(".py") or "/" in module_part or "\\" in module_part


def _module_from_file(path: Path) -> ModuleType:
    if not path.is_file():
        raise ModuleNotFoundError(f"Schema file not found: {path}")
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ModuleNotFoundError(f"Cannot load {path} as a Python module")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _module_from_name(name: str, root: Path) -> ModuleType:
    try:
        return importlib.import_module(name)
    except ModuleNotFoundError:
        pass

    search_path = str(root)
    inserted = search_path not in sys.path
    if inserted:
        sys.path.insert(0, search_path)
    try:
        return importlib.import_module(name)
    except ModuleNotFoundError:
        raise ModuleNotFoundError(
            f"No module named '{name}', neither installed nor under {root}"
        ) from None
    finally:
        if inserted and search_path in sys.path:
            sys.path.remove(search_path)


def load_schema(reference: str, project_root: Optional[str] = None) -> type:
    """Load the ParamSchema subclass named by ``reference``.

    Args:
        reference: ``'module.path:Schema'`` or ``'file.py:Schema'``
        project_root: Directory searched for module references that are not
            installed (default: cwd)

    Raises:
        ValueError: If ``reference`` does not name a module and a class
        ModuleNotFoundError: If the module or file cannot be loaded
        AttributeError: If the module defines no such name
        TypeError: If the name is not a ParamSchema subclass

    Examples:
        >>> UserParams = load_schema("app.schemas:UserParams")
        >>> UserParams = load_schema("./schemas.py:UserParams")
    """
    from ..schema import ParamSchema

    module_part, _, name = reference.partition(":")
    if not module_part or not name:
        raise ValueError(f"Expected 'module:Schema' or 'file.py:Schema', got: {reference}")

    if _is_file_reference(module_part):
        module = _module_from_file(Path(module_part).resolve())
    else:
        module = _module_from_name(module_part, Path(project_root or Path.cwd()).resolve())

    try:
        schema = getattr(module, name)
    except AttributeError:
        raise AttributeError(f"{module_part} defines no '{name}'") from None

    if not (isinstance(schema, type) and issubclass(schema, ParamSchema)):
        raise TypeError(f"'{reference}' is not a ParamSchema subclass")
    return schema
