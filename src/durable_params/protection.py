"""Mass-assignment guard.

Persistence layers call :func:`sanitize_for_mass_assignment` on whatever
they are about to assign. Values that know whether they were sanitized (any
:class:`Sanitizable`, e.g. a ParameterTree) must be permitted; plain values
pass through unchanged.
"""

from typing import Any, Protocol, runtime_checkable

from .errors import ForbiddenAttributes


@runtime_checkable
class Sanitizable(Protocol):
    """Anything that records whether it went through whitelist filtering."""

    @property
    def permitted(self) -> bool:
        ...


def sanitize_for_mass_assignment(attributes: Any) -> Any:
    """Return ``attributes`` if it is safe to mass-assign.

    Raises:
        ForbiddenAttributes: If ``attributes`` is Sanitizable and not permitted
    """
    if isinstance(attributes, Sanitizable) and not attributes.permitted:
        raise ForbiddenAttributes()
    return attributes


class ForbiddenAttributesProtection:
    """Mixin for models and repositories that accept mass assignment.

    Example:
        class UserRepository(ForbiddenAttributesProtection):
            def create(self, attributes):
                attributes = self.sanitize_for_mass_assignment(attributes)
                ...
    """

    def sanitize_for_mass_assignment(self, attributes: Any) -> Any:
        return sanitize_for_mass_assignment(attributes)
