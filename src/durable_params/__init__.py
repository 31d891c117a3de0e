"""durable-params: whitelist filtering of untrusted request parameters.

Request data is wrapped in a ParameterTree, required keys are checked, and
only attributes declared safe (directly or through a ParamSchema) survive
into the permitted tree handed to persistence code.
"""

# Export the public API
from .api import *  # noqa: F403, F401
from .api import __all__, __version__  # noqa: F401
