"""Registry mapping model names to ParamSchema classes.

The registry lets ``ParameterTree.transform`` infer a schema from the key
passed to ``require``: ``params.require("blog_post").transform()`` looks up
whatever was registered as ``"BlogPost"``, ``"blog_post"`` or
``"blog-post"``.

All operations hold a single lock, so concurrent request handlers can
register, look up, list and clear safely. Concurrent ``register`` calls for
one name resolve as last-completed-write-wins.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from .utils.text import underscore

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """Thread-safe mapping of normalized model name to schema class.

    Example:
        >>> registry = SchemaRegistry()
        >>> registry.register("BlogPost", BlogPostParams)
        >>> registry.lookup("blog_post") is BlogPostParams
        True
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._schemas: Dict[str, Any] = {}

    @staticmethod
    def normalize_name(name: Any) -> str:
        """Registry key for ``name`` (lower snake case)."""
        return underscore(name)

    def register(self, name: Any, schema: Any) -> Any:
        """Register ``schema`` under ``name``, replacing any previous entry.

        Returns:
            The registered schema
        """
        key = self.normalize_name(name)
        with self._lock:
            previous = self._schemas.get(key)
            self._schemas[key] = schema
        if previous is not None and previous is not schema:
            logger.debug(f"Replaced schema for {key!r}: {previous!r} -> {schema!r}")
        else:
            logger.debug(f"Registered schema for {key!r}: {schema!r}")
        return schema

    def lookup(self, name: Any) -> Optional[Any]:
        """Schema registered for ``name``, or None."""
        key = self.normalize_name(name)
        with self._lock:
            return self._schemas.get(key)

    def registered(self, name: Any) -> bool:
        """Whether a schema is registered for ``name``."""
        key = self.normalize_name(name)
        with self._lock:
            return key in self._schemas

    __contains__ = registered

    def permitted_attributes_for(self, name: Any, action: Any = None) -> Tuple[Any, ...]:
        """Permit spec of the schema registered for ``name``.

        Returns an empty tuple when nothing is registered.
        """
        schema = self.lookup(name)
        if schema is None:
            return ()
        return schema.permitted_attributes(action)

    def clear(self) -> None:
        """Remove every registration."""
        with self._lock:
            self._schemas.clear()

    def list_registered(self) -> List[str]:
        """Registered names in registration order."""
        with self._lock:
            return list(self._schemas)

    def __len__(self) -> int:
        with self._lock:
            return len(self._schemas)

    def __repr__(self) -> str:
        return f"SchemaRegistry({self.list_registered()})"


_default_registry = SchemaRegistry()


def get_default_registry() -> SchemaRegistry:
    """Registry used when callers do not pass one explicitly."""
    return _default_registry
