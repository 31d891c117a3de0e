"""ParameterTree: the node type for untrusted request data.

A ParameterTree is an ordered mapping from normalized string keys to
scalars, nested trees, or lists of either. It starts out unpermitted; the
only ways to obtain a permitted tree are :meth:`ParameterTree.permit`
(whitelist filtering) and :meth:`ParameterTree.permit_all` (full trust).

Key invariants:
- Keys are normalized to strings on construction and on every access
- Nested mappings, including those inside lists, are ParameterTrees
  (converted on construction, or lazily on read and cached in place)
- ``permitted`` survives ``slice``/``except_``/``dup``/``merge`` but
  ``permit`` always builds a fresh tree
- ``required_key`` follows structurally derived children so ``transform``
  can infer the schema later
"""

from collections.abc import Mapping, MutableMapping, Sized
from typing import Any, Callable, Dict, Iterator, Optional

from ..constants import INFER
from ..errors import ParameterMissing
from ..utils.text import normalize_key
from . import filtering

_MISSING = object()


def clone_value(value: Any) -> Any:
    """Structural copy over the closed set of value shapes.

    Trees keep their ``permitted``/``required_key`` state, mappings and
    lists are rebuilt, scalars are shared.
    """
    if isinstance(value, ParameterTree):
        return value.dup()
    if isinstance(value, Mapping):
        return {normalize_key(k): clone_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [clone_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(clone_value(item) for item in value)
    return value


def to_plain(value: Any) -> Any:
    """Deep conversion of trees to dicts with string keys."""
    if isinstance(value, ParameterTree):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {normalize_key(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def is_blank(value: Any) -> bool:
    """None and empty strings/lists/mappings are blank; ``False`` and ``0`` are not."""
    if value is None:
        return True
    return isinstance(value, Sized) and len(value) == 0


class ParameterTree(MutableMapping):
    """Mapping of untrusted parameters with whitelist filtering.

    Attributes:
        permitted: Whether this tree may be used for mass assignment
        required_key: Top-level key of the ``require`` chain that produced
            this tree, used to infer a schema in :meth:`transform`

    Example:
        >>> params = ParameterTree({"user": {"name": "John", "admin": True}})
        >>> user = params.require("user").permit("name")
        >>> user.to_dict()
        {'name': 'John'}
        >>> user.permitted
        True
    """

    def __init__(self, raw: Optional[Mapping] = None):
        self.permitted: bool = False
        self.required_key: Optional[str] = None
        self._entries: Dict[str, Any] = {}

        if raw is None:
            return
        if not isinstance(raw, Mapping):
            raise TypeError(f"ParameterTree requires a mapping, got {type(raw).__name__}")

        for key, value in raw.items():
            self._entries[normalize_key(key)] = self._wrap(value)

    def _wrap(self, value: Any) -> Any:
        # Construction always yields fresh, unpermitted subtrees
        if isinstance(value, Mapping):
            return type(self)(value)
        if isinstance(value, (list, tuple)):
            return [self._wrap(item) for item in value]
        return value

    def _convert(self, value: Any) -> Any:
        if isinstance(value, ParameterTree):
            return value
        if isinstance(value, Mapping):
            return type(self)(value)
        if isinstance(value, (list, tuple)):
            converted = [self._convert(item) for item in value]
            if isinstance(value, list) and all(a is b for a, b in zip(converted, value)):
                return value
            return converted
        return value

    # --- Mapping protocol ---------------------------------------------------

    def __getitem__(self, key: Any) -> Any:
        key = normalize_key(key)
        value = self._entries[key]
        converted = self._convert(value)
        if converted is not value:
            self._entries[key] = converted
        return converted

    def __setitem__(self, key: Any, value: Any) -> None:
        self._entries[normalize_key(key)] = value

    def __delitem__(self, key: Any) -> None:
        del self._entries[normalize_key(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Any) -> bool:
        return normalize_key(key) in self._entries

    def has_key(self, key: Any) -> bool:
        return key in self

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ParameterTree):
            return self.to_dict() == other.to_dict()
        if isinstance(other, Mapping):
            return self.to_dict() == to_plain(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.to_dict()!r} permitted: {self.permitted}>"

    def __copy__(self) -> "ParameterTree":
        return self.dup()

    def __deepcopy__(self, memo: Dict[int, Any]) -> "ParameterTree":
        return self.dup()

    # --- Access -------------------------------------------------------------

    def delete(self, key: Any, default: Any = None) -> Any:
        """Remove ``key`` and return its value (``default`` when absent)."""
        value = self._entries.pop(normalize_key(key), _MISSING)
        if value is _MISSING:
            return default
        return self._convert(value)

    def fetch(
        self,
        key: Any,
        default: Any = _MISSING,
        default_factory: Optional[Callable[[str], Any]] = None,
    ) -> Any:
        """Return the value for ``key`` or fail loudly.

        Unlike :meth:`require`, empty values are returned as-is.

        Args:
            key: Parameter key
            default: Value returned when the key is absent
            default_factory: Called with the normalized key when absent

        Raises:
            ParameterMissing: If the key is absent and no default was given
        """
        key = normalize_key(key)
        if key in self._entries:
            # No write-back, matching dict.get semantics for fetched values
            return self._convert(self._entries[key])
        if default_factory is not None:
            return self._convert(default_factory(key))
        if default is not _MISSING:
            return self._convert(default)
        raise ParameterMissing(key, list(self._entries))

    def require(self, key: Any) -> Any:
        """Return the value for ``key``, which must be present and non-empty.

        ``""``, ``[]``, ``{}`` and ``None`` count as missing; ``False`` and
        ``0`` are present. A returned subtree remembers the top-level key of
        the require chain in ``required_key``.

        Raises:
            ParameterMissing: With the sibling keys and up to three
                suggestions in the message
        """
        key = normalize_key(key)
        value = self.get(key)
        if is_blank(value):
            raise ParameterMissing(key, list(self._entries))

        if isinstance(value, ParameterTree) and value.required_key is None:
            value.required_key = self.required_key if self.required_key is not None else key
        return value

    required = require

    # --- Permission ---------------------------------------------------------

    def permit(self, *filters: Any, **nested: Any) -> "ParameterTree":
        """Return a new permitted tree holding only the whitelisted entries.

        Filters are names (scalar entries) or mappings of name to nested
        filters; ``{"tags": []}`` declares an array of scalars. Keyword
        arguments are shorthand for one more mapping filter.

        Examples:
            params.permit("name", emails=[])
            params.permit("name", {"emails": [], "friends": ["name", {"family": ["name"]}]})
        """
        if nested:
            filters = filters + (nested,)
        return filtering.permit(self, filters)

    def permit_all(self) -> "ParameterTree":
        """Mark this tree and every nested tree permitted, in place.

        Only for data from a fully trusted source.
        """
        for key in list(self._entries):
            _mark_permitted(self[key])
        self.permitted = True
        return self

    def transform(self, schema: Any = INFER, registry: Any = None, **options: Any) -> "ParameterTree":
        """Apply a schema's transformations, then permit its attributes.

        Args:
            schema: ParamSchema subclass, registered model name, ``INFER``
                (look up ``required_key`` in the registry) or ``None``
            registry: SchemaRegistry to use (default: process registry)
            **options: ``action``, ``additional_attrs`` and call-time metadata

        Raises:
            MetadataNotAllowed: If metadata keys are not declared by the schema
        """
        from ..pipeline import transform_and_permit

        return transform_and_permit(self, schema, registry=registry, **options)

    def permit_by_model(
        self,
        model_name: Any,
        action: Any = None,
        additional_attrs: Any = (),
        registry: Any = None,
    ) -> "ParameterTree":
        """Permit using the schema registered for ``model_name``."""
        from ..registry import get_default_registry

        registry = registry if registry is not None else get_default_registry()
        return self.transform(
            registry.lookup(model_name),
            registry=registry,
            action=action,
            additional_attrs=additional_attrs,
        )

    # --- Structural copies --------------------------------------------------

    def _derive(self, entries: Dict[str, Any]) -> "ParameterTree":
        derived = type(self)()
        derived._entries = entries
        derived.permitted = self.permitted
        derived.required_key = self.required_key
        return derived

    def slice(self, *keys: Any) -> "ParameterTree":
        """Copy holding only ``keys`` (missing keys are ignored)."""
        entries: Dict[str, Any] = {}
        for key in keys:
            key = normalize_key(key)
            if key in self._entries and key not in entries:
                entries[key] = clone_value(self[key])
        return self._derive(entries)

    def except_(self, *keys: Any) -> "ParameterTree":
        """Copy without ``keys``."""
        excluded = {normalize_key(k) for k in keys}
        return self._derive(
            {k: clone_value(v) for k, v in self._entries.items() if k not in excluded}
        )

    def dup(self) -> "ParameterTree":
        """Deep structural copy preserving ``permitted`` and ``required_key``."""
        return self._derive({k: clone_value(v) for k, v in self._entries.items()})

    def merge(self, other: Mapping) -> "ParameterTree":
        """Copy with ``other``'s entries layered on top."""
        merged = self.dup()
        for key, value in other.items():
            merged[key] = clone_value(value)
        return merged

    def to_dict(self) -> Dict[str, Any]:
        """Deep conversion to plain dicts and lists, ignoring permission."""
        return {key: to_plain(value) for key, value in self._entries.items()}

    to_unsafe_dict = to_dict


def _mark_permitted(value: Any) -> None:
    if isinstance(value, ParameterTree):
        value.permit_all()
    elif isinstance(value, list):
        for item in value:
            _mark_permitted(item)
