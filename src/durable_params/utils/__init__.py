"""Helpers shared by the core and the CLI."""

from .imports import load_schema
from .text import normalize_key, underscore

__all__ = ["load_schema", "normalize_key", "underscore"]
