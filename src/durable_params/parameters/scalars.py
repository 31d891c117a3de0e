"""Scalar whitelist for mass-assignable leaf values.

This is the single place that decides which leaf values are safe to copy
through a permit call. The default whitelist holds the types commonly
produced by JSON, XML and form decoders:

- str, bytes: text values
- None: null values
- numbers.Number: int, float, Decimal, Fraction (bool is an int)
- datetime.date, datetime.time: temporal values (datetime is a date)
- io.IOBase: stream and file-like objects

Adapters may add types (for example an upload-file class) with
:func:`register_scalar_type`; entries are never removed.
"""

import datetime
import io
import numbers
import threading
from typing import Any, Tuple

DEFAULT_SCALAR_TYPES: Tuple[type, ...] = (
    str,
    bytes,
    type(None),
    numbers.Number,
    datetime.date,
    datetime.time,
    io.IOBase,
)

_lock = threading.Lock()
_scalar_types: Tuple[type, ...] = DEFAULT_SCALAR_TYPES


def scalar_types() -> Tuple[type, ...]:
    """Current whitelist, defaults first."""
    return _scalar_types


def register_scalar_type(*types: type) -> Tuple[type, ...]:
    """Extend the whitelist with additional leaf types.

    Args:
        *types: Classes whose instances should be treated as scalars

    Returns:
        The updated whitelist

    Raises:
        TypeError: If an argument is not a class
    """
    global _scalar_types
    for tp in types:
        if not isinstance(tp, type):
            raise TypeError(f"Scalar types must be classes, got {tp!r}")

    with _lock:
        added = tuple(tp for tp in types if tp not in _scalar_types)
        _scalar_types = _scalar_types + added
    return _scalar_types


def is_scalar(value: Any) -> bool:
    """Whether ``value`` is a whitelisted leaf."""
    return isinstance(value, _scalar_types)


def is_array_of_scalars(value: Any) -> bool:
    """Whether ``value`` is a list whose every element is a whitelisted leaf.

    The empty list qualifies.
    """
    if not isinstance(value, (list, tuple)):
        return False
    return all(is_scalar(element) for element in value)
