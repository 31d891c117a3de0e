"""Global constants for durable-params.

This module centralizes the sentinels and fixed key lists shared by the
parameter tree, the schema DSL and the transform pipeline.
"""

import re
from typing import Tuple


class _Sentinel:
    """Named singleton used where ``None`` already carries a meaning."""

    __slots__ = ("_name",)

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __reduce__(self):
        return self._name


# Passed as the schema argument to ``transform`` to look the schema up from
# the tree's required key. ``None`` means "no schema" instead.
INFER = _Sentinel("INFER")

# Cache key used by ``ParamSchema.permitted_attributes`` when no action is given
NO_ACTION = _Sentinel("NO_ACTION")

# Routing keys injected by web frameworks; never reported as unpermitted
NEVER_UNPERMITTED_KEYS: Tuple[str, ...] = ("controller", "action")

# Metadata key every schema accepts without declaring it
ALWAYS_ALLOWED_METADATA: str = "current_user"

# Options understood by ``transform`` itself; everything else is metadata
CONTROL_OPTIONS: Tuple[str, ...] = ("action", "additional_attrs")

# Valid values for ``action_on_unpermitted_parameters`` (None disables the check)
UNPERMITTED_ACTIONS: Tuple[str, ...] = ("log", "raise")

# Keys of a fields-for collection: "0", "1", "-1", ...
FIELDS_FOR_KEY = re.compile(r"\A-?\d+\Z")


def grouped_key_pattern(name: str) -> "re.Pattern[str]":
    """Pattern matching multi-part siblings of ``name`` such as ``born_on(1i)``."""
    return re.compile(r"\A" + re.escape(name) + r"\(\d+[if]?\)\Z")
