"""Declarative parameter schemas.

A schema describes, for one logical resource, which attributes may be
mass-assigned, for which actions, which call-time metadata its
transformations may read, and how values are rewritten before filtering.

Schemas are declared in the class body and configured once, at class
creation:

    class PostParams(ParamSchema, model="post"):
        ALLOW = (
            "title",
            "body",
            Attribute("published", only="create"),
            Attribute("view_count", except_="create"),
            Attribute("tags", array=True),
        )
        DENY = ("author_id",)
        METADATA = ("ip_address",)
        FLAGS = {"audited": True}

        @transforms("title")
        def strip_title(value, metadata):
            return value.strip() if isinstance(value, str) else value

The same configuration can be changed afterwards through the class methods
(``PostParams.allow("summary")``); ``allow`` and ``deny`` invalidate the
cached permit specs.

Inheritance snapshots the parent: a subclass gets its own copy of every
list, set and mapping when it is created, so later changes on either side
do not leak into the other. Cached permit specs are never copied.
"""

import copy
import inspect
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from .constants import ALWAYS_ALLOWED_METADATA, NO_ACTION
from .parameters.tree import ParameterTree, clone_value
from .registry import SchemaRegistry, get_default_registry
from .utils.text import normalize_key

Transformation = Callable[[Any, Dict[str, Any]], Any]
PermitSpec = Tuple[Union[str, Mapping[str, tuple]], ...]

_TRANSFORM_MARKER = "_transforms_attribute"


def _declared(value: Any) -> Tuple[Any, ...]:
    """Class-body declaration as a tuple; a bare string is one entry."""
    if value is None:
        return ()
    if isinstance(value, (str, bytes, Attribute)):
        return (value,)
    return tuple(value)


def plain_spec(spec: Iterable[Any]) -> List[Any]:
    """Mutable, JSON-ready copy of a permit spec from ``permitted_attributes``."""
    return [
        {key: list(nested) for key, nested in item.items()} if isinstance(item, Mapping) else item
        for item in spec
    ]


def _normalize_actions(value: Any) -> Tuple[str, ...]:
    """Normalize an ``only``/``except`` value to a tuple of action names."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(normalize_key(v) for v in value)
    return (normalize_key(value),)


@dataclass(frozen=True)
class Attribute:
    """Declaration of one allowed attribute for a schema's ``ALLOW`` tuple.

    Attributes:
        name: Attribute name
        only: Actions for which the attribute is permitted
        except_: Actions for which the attribute is not permitted
        array: Permit an array of scalars instead of a scalar
        options: Extra opaque options kept for introspection
    """
    name: str
    only: Any = None
    except_: Any = None
    array: Optional[bool] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def allow_kwargs(self) -> Dict[str, Any]:
        kwargs = dict(self.options)
        if self.only is not None:
            kwargs["only"] = self.only
        if self.except_ is not None:
            kwargs["except_"] = self.except_
        if self.array is not None:
            kwargs["array"] = self.array
        return kwargs


def transforms(attribute: str):
    """Mark a function in a schema body as the transformation for ``attribute``.

    The function receives ``(value, metadata)`` and returns the new value.
    It is stored as a staticmethod, so it stays callable from the class.

    Args:
        attribute: Name of the attribute to transform

    Returns:
        Decorator function

    Example:
        @transforms("email")
        def normalize_email(value, metadata):
            return value.strip().lower() if value else value
    """
    name = normalize_key(attribute)

    def decorator(func: Callable) -> staticmethod:
        if isinstance(func, staticmethod):
            func = func.__func__
        if isinstance(func, classmethod) or not callable(func):
            raise TypeError(f"@transforms({name!r}) must decorate a plain function")

        params = list(inspect.signature(func).parameters.values())
        varargs = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)
        positional = [p for p in params if p.kind in (
            inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)]
        if not varargs and len(positional) != 2:
            raise TypeError(
                f"@transforms({name!r}) function '{func.__name__}' must have "
                f"signature (value, metadata), got {[p.name for p in params]}"
            )

        setattr(func, _TRANSFORM_MARKER, name)
        return staticmethod(func)
    return decorator


class ParamSchema:
    """Base class for declarative parameter schemas.

    Subclasses MAY set:
    - ALLOW: names or :class:`Attribute` declarations
    - DENY: names that are never permitted, whatever ALLOW says
    - METADATA: call-time metadata keys the transformations may read
    - FLAGS: mapping of flag name to value (or an iterable of names)

    Subclass keywords:
    - model: register the schema under this model name
    - registry: registry for ``model`` (default: the process registry)
    """

    _allowed: List[str] = []
    _denied: List[str] = []
    _attribute_options: Dict[str, Dict[str, Any]] = {}
    _flags: Dict[str, Any] = {}
    _allowed_metadata: Dict[str, None] = {}
    _transformations: Dict[str, Transformation] = {}
    _permitted_cache: Dict[Any, PermitSpec] = {}

    def __init_subclass__(cls, model: Any = None, registry: Optional[SchemaRegistry] = None, **kwargs):
        """Snapshot the parent's configuration, then apply the class body."""
        super().__init_subclass__(**kwargs)

        parent = next(
            (base for base in cls.__mro__[1:] if issubclass(base, ParamSchema)),
            ParamSchema,
        )
        cls._snapshot_from(parent)

        own = cls.__dict__
        for item in _declared(own.get("ALLOW")):
            if isinstance(item, Attribute):
                cls.allow(item.name, **item.allow_kwargs())
            else:
                cls.allow(item)

        for item in _declared(own.get("DENY")):
            cls.deny(item)

        cls.metadata(*_declared(own.get("METADATA")))

        flags = own.get("FLAGS")
        if isinstance(flags, Mapping):
            for name, value in flags.items():
                cls.flag(name, value)
        else:
            for name in _declared(flags):
                cls.flag(name)

        for attr in list(own.values()):
            func = attr.__func__ if isinstance(attr, staticmethod) else attr
            attribute = getattr(func, _TRANSFORM_MARKER, None)
            if attribute is not None:
                cls.transform(attribute, func)

        if model is not None:
            (registry if registry is not None else get_default_registry()).register(model, cls)

    @classmethod
    def _snapshot_from(cls, parent: type) -> None:
        cls._allowed = list(parent._allowed)
        cls._denied = list(parent._denied)
        cls._attribute_options = copy.deepcopy(parent._attribute_options)
        cls._flags = copy.deepcopy(parent._flags)
        cls._allowed_metadata = dict(parent._allowed_metadata)
        cls._transformations = dict(parent._transformations)
        cls._permitted_cache = {}

    # --- DSL ----------------------------------------------------------------

    @classmethod
    def allow(
        cls,
        name: Any,
        only: Any = None,
        except_: Any = None,
        array: Optional[bool] = None,
        **options: Any,
    ) -> None:
        """Allow ``name``, optionally restricted to some actions.

        Calling ``allow`` again for a name keeps its position; passing options
        replaces the previous options.

        Args:
            name: Attribute name
            only: Action (or actions) for which the attribute is permitted
            except_: Action (or actions) for which it is not permitted;
                ``except`` is accepted too via ``**{"except": ...}``
            array: Permit an array of scalars rather than a scalar
            **options: Extra options kept for introspection
        """
        name = normalize_key(name)
        if name not in cls._allowed:
            cls._allowed.append(name)

        if "except" in options:
            except_ = options.pop("except")

        normalized: Dict[str, Any] = dict(options)
        if only is not None:
            normalized["only"] = _normalize_actions(only)
        if except_ is not None:
            normalized["except"] = _normalize_actions(except_)
        if array is not None:
            normalized["array"] = bool(array)
        if normalized:
            cls._attribute_options[name] = normalized

        cls._permitted_cache = {}

    @classmethod
    def deny(cls, name: Any) -> None:
        """Deny ``name``; a denial always wins over ``allow``."""
        name = normalize_key(name)
        if name not in cls._denied:
            cls._denied.append(name)
        cls._permitted_cache = {}

    @classmethod
    def flag(cls, name: Any, value: Any = True) -> None:
        """Set a schema flag (not used for filtering)."""
        cls._flags[normalize_key(name)] = value

    @classmethod
    def metadata(cls, *keys: Any) -> None:
        """Declare call-time metadata keys the transformations may read."""
        for key in keys:
            cls._allowed_metadata[normalize_key(key)] = None

    @classmethod
    def transform(cls, name: Any, func: Optional[Transformation] = None) -> Transformation:
        """Register ``func(value, metadata)`` as the transformation for ``name``.

        Re-registering a name replaces the previous transformation.

        Raises:
            TypeError: If ``func`` is missing or not callable
        """
        name = normalize_key(name)
        if func is None or not callable(func):
            raise TypeError(f"A callable is required to transform {name!r}")
        cls._transformations[name] = func
        return func

    # --- Introspection ------------------------------------------------------

    @classmethod
    def is_allowed(cls, name: Any) -> bool:
        name = normalize_key(name)
        return name in cls._allowed and name not in cls._denied

    @classmethod
    def is_denied(cls, name: Any) -> bool:
        return normalize_key(name) in cls._denied

    @classmethod
    def get_flag(cls, name: Any, default: Any = None) -> Any:
        return cls._flags.get(normalize_key(name), default)

    @classmethod
    def is_metadata_allowed(cls, key: Any) -> bool:
        """``current_user`` is always allowed; other keys must be declared."""
        key = normalize_key(key)
        return key == ALWAYS_ALLOWED_METADATA or key in cls._allowed_metadata

    @classmethod
    def attribute_options(cls, name: Any) -> Dict[str, Any]:
        """Options recorded for ``name`` (empty for unknown names)."""
        return dict(cls._attribute_options.get(normalize_key(name), {}))

    @classmethod
    def allowed_attributes(cls) -> Tuple[str, ...]:
        return tuple(cls._allowed)

    @classmethod
    def denied_attributes(cls) -> Tuple[str, ...]:
        return tuple(cls._denied)

    @classmethod
    def allowed_metadata(cls) -> FrozenSet[str]:
        return frozenset(cls._allowed_metadata)

    @classmethod
    def flags(cls) -> Mapping:
        return MappingProxyType(dict(cls._flags))

    @classmethod
    def transformations(cls) -> Mapping:
        return MappingProxyType(dict(cls._transformations))

    # --- Permit spec and transformations -----------------------------------

    @classmethod
    def permitted_attributes(cls, action: Any = None) -> PermitSpec:
        """Permit spec for ``action``, cached until the next allow/deny.

        ``allowed - denied``, narrowed by each attribute's ``only``/``except``
        options when an action is given. Array attributes are emitted as
        read-only ``{name: ()}`` mappings. Use :func:`plain_spec` for a
        mutable copy.

        Args:
            action: Action name, or None to skip action filtering

        Returns:
            Tuple of names and single-key mappings, suitable for ``permit``
        """
        cache = cls._permitted_cache
        cache_key = NO_ACTION if action is None else normalize_key(action)
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        denied = set(cls._denied)
        spec: List[Union[str, Mapping[str, tuple]]] = []
        for name in cls._allowed:
            if name in denied:
                continue

            opts = cls._attribute_options.get(name, {})
            if action is not None:
                if "only" in opts:
                    if cache_key not in opts["only"]:
                        continue
                elif "except" in opts and cache_key in opts["except"]:
                    continue

            spec.append(MappingProxyType({name: ()}) if opts.get("array") else name)

        result = tuple(spec)
        cache[cache_key] = result
        return result

    @classmethod
    def apply_transformations(cls, params: Any, metadata: Optional[Mapping] = None) -> Any:
        """Run the declared transformations over a mapping of parameters.

        Each transformation whose attribute is present receives a structural
        copy of the value, so the caller's data is never mutated. Errors
        raised by transformations propagate unchanged.

        Args:
            params: ParameterTree or mapping (anything else is returned as-is)
            metadata: Call-time metadata passed to every transformation

        Returns:
            A new dict with string keys
        """
        if not isinstance(params, Mapping):
            return params

        if isinstance(params, ParameterTree):
            data = params.to_dict()
        else:
            data = {normalize_key(k): v for k, v in params.items()}

        context = dict(metadata or {})
        for attribute, transformation in cls._transformations.items():
            if attribute in data:
                data[attribute] = transformation(clone_value(data[attribute]), context)
        return data

    @classmethod
    def describe(cls) -> Dict[str, Any]:
        """Export the schema configuration as a serializable dictionary."""
        return {
            "name": cls.__name__,
            "allowed": list(cls._allowed),
            "denied": list(cls._denied),
            "attribute_options": {
                name: {k: list(v) if isinstance(v, tuple) else v for k, v in opts.items()}
                for name, opts in cls._attribute_options.items()
            },
            "flags": dict(cls._flags),
            "metadata": sorted(cls._allowed_metadata),
            "transformations": list(cls._transformations),
            "permitted_attributes": plain_spec(cls.permitted_attributes()),
        }


def extend(
    parent: type,
    name: Optional[str] = None,
    *,
    allow: Iterable[Any] = (),
    deny: Iterable[Any] = (),
    metadata: Iterable[Any] = (),
    flags: Optional[Mapping] = None,
    transformations: Optional[Mapping[str, Transformation]] = None,
    model: Any = None,
    registry: Optional[SchemaRegistry] = None,
) -> type:
    """Create a schema from ``parent`` plus overrides without a class statement.

    The new class snapshots ``parent`` like any subclass would.

    Example:
        >>> AdminUserParams = extend(UserParams, "AdminUserParams", allow=["role"])
    """
    if not (isinstance(parent, type) and issubclass(parent, ParamSchema)):
        raise TypeError(f"extend() requires a ParamSchema subclass, got {parent!r}")

    namespace = {
        "__module__": parent.__module__,
        "ALLOW": _declared(allow),
        "DENY": _declared(deny),
        "METADATA": _declared(metadata),
    }
    if flags is not None:
        namespace["FLAGS"] = dict(flags)

    kwds = {}
    if model is not None:
        kwds["model"] = model
    if registry is not None:
        kwds["registry"] = registry

    schema = types.new_class(
        name or f"Extended{parent.__name__}",
        (parent,),
        kwds,
        lambda ns: ns.update(namespace),
    )
    for attribute, transformation in (transformations or {}).items():
        schema.transform(attribute, transformation)
    return schema
