"""Parameter tree and whitelist filtering.

This package holds the node type for untrusted request data, the
recursive permit algorithm and the scalar whitelist it relies on.
"""

from .scalars import (
    DEFAULT_SCALAR_TYPES,
    is_scalar,
    is_array_of_scalars,
    register_scalar_type,
    scalar_types,
)
from .tree import ParameterTree, clone_value, is_blank
from .filtering import flatten_filters, is_fields_for

__all__ = [
    # Scalars
    "DEFAULT_SCALAR_TYPES",
    "is_scalar",
    "is_array_of_scalars",
    "register_scalar_type",
    "scalar_types",
    # Tree
    "ParameterTree",
    "clone_value",
    "is_blank",
    # Filtering
    "flatten_filters",
    "is_fields_for",
]
