"""Error taxonomy for durable-params.

Every condition the core raises on purpose derives from :class:`ParamsError`
so adapters can map the whole family to a transport response in one place:

- ParameterMissing: a required key is absent or empty
- UnpermittedParameters: rejected keys under the ``raise`` policy
- ForbiddenAttributes: an unpermitted tree reached a mass-assignment boundary
- MetadataNotAllowed: undeclared call-time metadata (programmer error)

Errors raised by user supplied transformations are never wrapped.
"""

from typing import Iterable, List, Optional, Sequence

from .constants import ALWAYS_ALLOWED_METADATA

MAX_SUGGESTIONS = 3


class ParamsError(Exception):
    """Base class for errors raised by durable-params."""


class ParameterMissing(ParamsError, KeyError):
    """Raised when a required parameter is missing or its value is empty.

    Attributes:
        param: Normalized name of the missing parameter
        available_keys: Sibling keys that were present, in source order
    """

    def __init__(self, param: str, available_keys: Optional[Iterable[str]] = None):
        self.param = param
        self.available_keys = list(available_keys or [])
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        msg = f"param is missing or the value is empty: {self.param}"
        if not self.available_keys:
            return msg

        msg += "\n\nAvailable keys: " + ", ".join(self.available_keys) + "\n"
        similar = similar_keys(self.param, self.available_keys)
        if similar:
            msg += "\nDid you mean? " + ", ".join(similar)
        return msg

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class UnpermittedParameters(ParamsError, KeyError):
    """Raised under the ``raise`` policy when a permit call dropped keys.

    Attributes:
        params: The rejected keys
    """

    def __init__(self, params: Sequence[str]):
        self.params = list(params)
        super().__init__(f"found unpermitted parameters: {', '.join(self.params)}")

    def __str__(self) -> str:
        return self.args[0]


class ForbiddenAttributes(ParamsError):
    """Raised when an unpermitted tree is used for mass assignment."""

    def __init__(self, message: str = "attempted mass assignment with unpermitted parameters"):
        super().__init__(message)


class MetadataNotAllowed(ParamsError, ValueError):
    """Raised when call-time metadata keys are not declared by the schema.

    Attributes:
        keys: The undeclared metadata keys
        schema_name: Name of the schema class that rejected them
    """

    def __init__(self, keys: Sequence[str], schema_name: str):
        self.keys = list(keys)
        self.schema_name = schema_name
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        keys_list = ", ".join(repr(k) for k in self.keys)
        declared = ", ".join(repr(k) for k in self.keys)
        if len(self.keys) == 1:
            declared += ","
        return (
            f"Metadata key(s) {keys_list} not allowed for {self.schema_name}.\n\n"
            f"To fix this, declare them in your schema class:\n\n"
            f"    class {self.schema_name}(ParamSchema):\n"
            f"        METADATA = ({declared})\n\n"
            f"Note: {ALWAYS_ALLOWED_METADATA!r} is always implicitly allowed "
            f"and doesn't need to be declared."
        )


def similar_keys(param: str, available_keys: Iterable[str], limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Pick up to ``limit`` "did you mean" candidates in source order.

    A key is similar when it shares the first character with ``param`` or
    when either lower-cased string contains the other.
    """
    needle = str(param).lower()
    matches = []
    for key in available_keys:
        candidate = str(key).lower()
        if (
            (candidate[:1] and candidate[:1] == needle[:1])
            or needle in candidate
            or candidate in needle
        ):
            matches.append(str(key))
            if len(matches) == limit:
                break
    return matches
