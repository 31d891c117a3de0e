"""Recursive whitelist filtering behind ``ParameterTree.permit``.

A filter list is flattened and each item handled by shape:

- name: copy the entry if it is a scalar, plus any multi-part siblings
  such as ``born_on(1i)``, ``born_on(2i)``, ``born_on(3i)``
- mapping: for each declared key either accept an array of scalars
  (``{"tags": []}``) or recurse into the nested value with the nested
  filters. Lists are filtered item by item and fields-for collections
  (``{"0": {...}, "1": {...}}``) keep their index keys.

Anything not declared is dropped. When ``action_on_unpermitted_parameters``
is configured, each permit call reports the keys it dropped at its own level.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Iterable, List, Optional

from ..config import get_config
from ..constants import FIELDS_FOR_KEY, grouped_key_pattern
from ..errors import UnpermittedParameters
from ..utils.text import normalize_key
from .scalars import is_array_of_scalars, is_scalar

logger = logging.getLogger(__name__)


def flatten_filters(filters: Iterable[Any]) -> List[Any]:
    """Flatten nested lists/tuples of filters into a single list."""
    flat: List[Any] = []
    for item in filters:
        if isinstance(item, (list, tuple)):
            flat.extend(flatten_filters(item))
        else:
            flat.append(item)
    return flat


def is_fields_for(value: Any) -> bool:
    """Whether ``value`` is a non-empty mapping of integer-string keys to mappings."""
    if not isinstance(value, Mapping) or len(value) == 0:
        return False
    return all(
        FIELDS_FOR_KEY.match(normalize_key(key)) and isinstance(item, Mapping)
        for key, item in value.items()
    )


def is_array_declaration(nested: Any) -> bool:
    """``[]`` in a filter mapping declares an array of scalars."""
    return isinstance(nested, (list, tuple)) and len(nested) == 0


def permit(source, filters: Iterable[Any]):
    """Build the permitted copy of ``source`` described by ``filters``.

    Args:
        source: The ParameterTree being filtered (left untouched)
        filters: Names and mappings as accepted by ``ParameterTree.permit``

    Returns:
        A new tree of the same type as ``source``, marked permitted

    Raises:
        UnpermittedParameters: If the ``raise`` policy is configured and
            keys were dropped
    """
    result = type(source)()

    for spec in flatten_filters(filters):
        if isinstance(spec, str):
            _permit_scalar(source, result, spec)
        elif isinstance(spec, Mapping):
            _permit_nested(source, result, spec)

    check_unpermitted(source, result)
    return result.permit_all()


def _permit_scalar(source, result, name: str) -> None:
    if name in source and is_scalar(source[name]):
        result[name] = source[name]

    pattern = grouped_key_pattern(name)
    for key in list(source):
        if pattern.match(key) and is_scalar(source[key]):
            result[key] = source[key]


def _permit_nested(source, result, spec: Mapping) -> None:
    declared = {normalize_key(k): v for k, v in spec.items()}

    for key, nested in declared.items():
        if key not in source:
            continue
        value = source[key]
        if value is None or value is False:
            continue

        if is_array_declaration(nested):
            if is_array_of_scalars(value):
                result[key] = list(value)
            continue

        nested_filters = list(nested) if isinstance(nested, (list, tuple)) else [nested]
        permitted = _each_element(value, lambda element: _permit_element(source, element, nested_filters))
        if permitted is not None:
            result[key] = permitted


def _permit_element(source, element: Any, nested_filters: List[Any]):
    if not isinstance(element, Mapping):
        return None
    tree_cls = type(source)
    if not isinstance(element, tree_cls):
        element = tree_cls(element)
    return element.permit(*nested_filters)


def _each_element(value: Any, permit_one: Callable[[Any], Any]) -> Optional[Any]:
    if isinstance(value, list):
        permitted = (permit_one(item) for item in value)
        return [item for item in permitted if item is not None]

    if is_fields_for(value):
        collection = type(value)()
        for index, item in value.items():
            permitted = permit_one(item)
            if permitted is not None:
                collection[index] = permitted
        return collection

    return permit_one(value)


def unpermitted_keys(source, result) -> List[str]:
    """Keys of ``source`` that ``result`` dropped, minus framework routing keys."""
    never = set(get_config().never_unpermitted_keys)
    return [key for key in source if key not in result and key not in never]


def check_unpermitted(source, result) -> None:
    """Apply the configured unpermitted-parameters policy to one permit call."""
    config = get_config()
    action = config.action_on_unpermitted_parameters
    if action is None:
        return

    keys = unpermitted_keys(source, result)
    if not keys:
        return

    if action == "raise":
        raise UnpermittedParameters(keys)

    logger.debug(f"Unpermitted parameters: {', '.join(keys)}")
    config.notify_unpermitted(keys)
