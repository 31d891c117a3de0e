"""Process-wide configuration for durable-params.

Adapters set these values once at boot; the core reads them every time a
permit call finishes. Settings:

- action_on_unpermitted_parameters: ``None`` (off), ``"log"`` or ``"raise"``
- unpermitted_notification_handler: ``callable(keys)`` used by ``"log"``
- never_unpermitted_keys: framework routing keys that are never reported

Settings can also be read from a ``[tool.durable_params]`` table in
``pyproject.toml``:

    [tool.durable_params]
    action_on_unpermitted_parameters = "raise"
    never_unpermitted_keys = ["controller", "action", "format"]
"""

import logging
import threading
import tomllib
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple, Union

from .constants import NEVER_UNPERMITTED_KEYS, UNPERMITTED_ACTIONS

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[Sequence[str]], None]

PYPROJECT_SECTION = "durable_params"

_FIELDS = (
    "action_on_unpermitted_parameters",
    "unpermitted_notification_handler",
    "never_unpermitted_keys",
)


def _normalize_action(value: Union[str, bool, None]) -> Optional[str]:
    """Map user supplied policy values to ``None``, ``"log"`` or ``"raise"``."""
    if value is None or value is False:
        return None
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("", "off", "none", "false"):
            return None
        if lowered in UNPERMITTED_ACTIONS:
            return lowered
    raise ValueError(
        f"action_on_unpermitted_parameters must be one of "
        f"{list(UNPERMITTED_ACTIONS)} or off, got {value!r}"
    )


class Configuration:
    """Mutable settings container shared by the whole process."""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Restore defaults."""
        with self._lock:
            self._action: Optional[str] = None
            self._handler: Optional[NotificationHandler] = None
            self._never: Tuple[str, ...] = NEVER_UNPERMITTED_KEYS

    @property
    def action_on_unpermitted_parameters(self) -> Optional[str]:
        return self._action

    @action_on_unpermitted_parameters.setter
    def action_on_unpermitted_parameters(self, value: Union[str, bool, None]) -> None:
        self._action = _normalize_action(value)

    @property
    def unpermitted_notification_handler(self) -> Optional[NotificationHandler]:
        return self._handler

    @unpermitted_notification_handler.setter
    def unpermitted_notification_handler(self, handler: Optional[NotificationHandler]) -> None:
        if handler is not None and not callable(handler):
            raise TypeError(f"unpermitted_notification_handler must be callable, got {handler!r}")
        self._handler = handler

    @property
    def never_unpermitted_keys(self) -> Tuple[str, ...]:
        return self._never

    @never_unpermitted_keys.setter
    def never_unpermitted_keys(self, keys: Sequence[str]) -> None:
        if isinstance(keys, str):
            keys = [keys]
        self._never = tuple(str(k) for k in keys)

    def update(self, **changes: Any) -> None:
        """Set several settings at once.

        Raises:
            TypeError: If a key is not a known setting
        """
        unknown = sorted(set(changes) - set(_FIELDS))
        if unknown:
            raise TypeError(f"Unknown configuration keys: {unknown}. Available: {list(_FIELDS)}")
        for name, value in changes.items():
            setattr(self, name, value)

    def snapshot(self) -> Dict[str, Any]:
        """Current settings as a plain dict."""
        return {name: getattr(self, name) for name in _FIELDS}

    def notify_unpermitted(self, keys: Sequence[str]) -> None:
        """Hand rejected keys to the notification handler.

        Handler failures are logged and swallowed so a faulty handler cannot
        break request processing.
        """
        handler = self._handler
        if handler is None:
            return
        try:
            handler(list(keys))
        except Exception:
            logger.warning("Unpermitted parameters notification handler failed", exc_info=True)

    def __repr__(self) -> str:
        items = ", ".join(f"{k}={v!r}" for k, v in self.snapshot().items())
        return f"Configuration({items})"


_config = Configuration()


def get_config() -> Configuration:
    """Return the process-wide configuration."""
    return _config


def configure(**changes: Any) -> Configuration:
    """Update the process-wide configuration.

    Example:
        >>> configure(action_on_unpermitted_parameters="raise")
    """
    _config.update(**changes)
    return _config


def reset_config() -> Configuration:
    """Restore the process-wide configuration to its defaults."""
    _config.reset()
    return _config


@contextmanager
def override_config(**changes: Any) -> Iterator[Configuration]:
    """Temporarily change settings, restoring the previous values on exit."""
    previous = _config.snapshot()
    _config.update(**changes)
    try:
        yield _config
    finally:
        _config.update(**previous)


def load_pyproject_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Read the ``[tool.durable_params]`` table.

    Args:
        path: pyproject.toml location (default: ./pyproject.toml)

    Returns:
        The table, or an empty dict when the file or table is absent

    Raises:
        tomllib.TOMLDecodeError: If the TOML is malformed
    """
    pyproject_path = Path(path) if path is not None else Path.cwd() / "pyproject.toml"
    if not pyproject_path.exists():
        return {}

    with open(pyproject_path, "rb") as f:
        data = tomllib.load(f)

    return dict(data.get("tool", {}).get(PYPROJECT_SECTION, {}))


def configure_from_pyproject(path: Optional[Union[str, Path]] = None) -> Configuration:
    """Apply settings found in pyproject.toml to the process-wide configuration.

    Only ``action_on_unpermitted_parameters`` and ``never_unpermitted_keys``
    can be expressed in TOML; the notification handler is code.
    """
    table = load_pyproject_config(path)
    changes = {k: v for k, v in table.items() if k in _FIELDS and k != "unpermitted_notification_handler"}
    ignored = sorted(set(table) - set(changes))
    if ignored:
        logger.warning(f"Ignoring unsupported [tool.{PYPROJECT_SECTION}] keys: {ignored}")
    if changes:
        logger.info(f"Applying [tool.{PYPROJECT_SECTION}] settings: {sorted(changes)}")
    return configure(**changes)
