"""Public API for durable-params.

This module collects the parameter tree, the schema DSL, the registry,
configuration and the error types into one import surface.
"""

# Parameters
from .parameters import (
    DEFAULT_SCALAR_TYPES,
    ParameterTree,
    is_array_of_scalars,
    is_scalar,
    register_scalar_type,
    scalar_types,
)

# Schemas
from .schema import Attribute, ParamSchema, extend, plain_spec, transforms
from .registry import SchemaRegistry, get_default_registry
from .pipeline import transform_and_permit

# Mass-assignment guard
from .protection import (
    ForbiddenAttributesProtection,
    Sanitizable,
    sanitize_for_mass_assignment,
)

# Configuration
from .config import (
    Configuration,
    configure,
    configure_from_pyproject,
    get_config,
    load_pyproject_config,
    override_config,
    reset_config,
)

# Errors
from .errors import (
    ForbiddenAttributes,
    MetadataNotAllowed,
    ParameterMissing,
    ParamsError,
    UnpermittedParameters,
)

# Constants
from .constants import INFER

# Version
try:
    from importlib.metadata import version
    __version__ = version("durable-params")
except Exception:
    __version__ = "0.1.0"

__all__ = [
    # Parameters
    "DEFAULT_SCALAR_TYPES",
    "ParameterTree",
    "is_array_of_scalars",
    "is_scalar",
    "register_scalar_type",
    "scalar_types",
    # Schemas
    "Attribute",
    "ParamSchema",
    "extend",
    "plain_spec",
    "transforms",
    "SchemaRegistry",
    "get_default_registry",
    "transform_and_permit",
    # Guard
    "ForbiddenAttributesProtection",
    "Sanitizable",
    "sanitize_for_mass_assignment",
    # Configuration
    "Configuration",
    "configure",
    "configure_from_pyproject",
    "get_config",
    "load_pyproject_config",
    "override_config",
    "reset_config",
    # Errors
    "ForbiddenAttributes",
    "MetadataNotAllowed",
    "ParameterMissing",
    "ParamsError",
    "UnpermittedParameters",
    # Constants
    "INFER",
    "__version__",
]
