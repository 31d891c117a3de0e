"""Transform-then-permit composition behind ``ParameterTree.transform``.

Steps:
1. Resolve the schema (explicit class, registered name, or ``INFER`` from
   the tree's ``required_key``). No schema means an empty permitted tree.
2. Split the options into control keys (``action``, ``additional_attrs``)
   and call-time metadata, and reject metadata the schema did not declare.
3. Run the schema's transformations over a plain copy of the tree.
4. Permit the rebuilt tree with the schema's attributes for the action,
   plus any ``additional_attrs``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .constants import CONTROL_OPTIONS, INFER
from .errors import MetadataNotAllowed
from .parameters.tree import ParameterTree
from .registry import SchemaRegistry, get_default_registry
from .utils.text import normalize_key

logger = logging.getLogger(__name__)


def resolve_schema(tree: ParameterTree, schema: Any, registry: SchemaRegistry) -> Optional[type]:
    """Turn the ``schema`` argument of ``transform`` into a schema class or None."""
    if schema is INFER:
        if tree.required_key is None:
            logger.debug("No required key to infer a schema from")
            return None
        schema = tree.required_key

    if schema is None:
        return None

    if isinstance(schema, type):
        return schema

    resolved = registry.lookup(schema)
    if resolved is None:
        logger.debug(f"No schema registered for {registry.normalize_name(schema)!r}")
    return resolved


def split_options(options: Dict[str, Any]) -> Tuple[Any, List[Any], Dict[str, Any]]:
    """Separate ``action`` and ``additional_attrs`` from the metadata."""
    action = options.get("action")
    additional = options.get("additional_attrs") or ()
    if isinstance(additional, (str, dict)):
        additional = [additional]
    metadata = {k: v for k, v in options.items() if k not in CONTROL_OPTIONS}
    return action, list(additional), metadata


def validate_metadata(schema: type, metadata: Dict[str, Any]) -> None:
    """Reject every metadata key ``schema`` does not declare.

    Raises:
        MetadataNotAllowed: Naming all disallowed keys at once
    """
    disallowed = [key for key in metadata if not schema.is_metadata_allowed(key)]
    if disallowed:
        raise MetadataNotAllowed([normalize_key(k) for k in disallowed], schema.__name__)


def transform_and_permit(
    tree: ParameterTree,
    schema: Any = INFER,
    registry: Optional[SchemaRegistry] = None,
    **options: Any,
) -> ParameterTree:
    """Apply ``schema``'s transformations to ``tree`` and permit the result.

    Args:
        tree: Source tree (left untouched)
        schema: ParamSchema subclass, registered name, ``INFER`` or None
        registry: Registry for name lookups (default: process registry)
        **options: ``action``, ``additional_attrs`` and call-time metadata

    Returns:
        A new permitted tree (empty when no schema applies)

    Raises:
        MetadataNotAllowed: If undeclared metadata keys were passed
    """
    registry = registry if registry is not None else get_default_registry()
    resolved = resolve_schema(tree, schema, registry)
    if resolved is None:
        return type(tree)().permit_all()

    action, additional_attrs, metadata = split_options(options)
    validate_metadata(resolved, metadata)

    transformed = type(tree)(resolved.apply_transformations(tree, options))
    transformed.required_key = tree.required_key

    return transformed.permit(*resolved.permitted_attributes(action), *additional_attrs)
