"""Text helpers for key and model-name normalization."""

import re
from typing import Any

_ACRONYM_BOUNDARY = re.compile(r"([A-Z\d]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")
_SEPARATORS = re.compile(r"[\s\-]+")


def normalize_key(key: Any) -> str:
    """Convert any parameter key to its canonical string form.

    ``None`` becomes ``""``, booleans become ``"true"``/``"false"`` and bytes
    are decoded as UTF-8; everything else goes through ``str()``.

    Examples:
        >>> normalize_key(1)
        '1'
        >>> normalize_key(None)
        ''
        >>> normalize_key(True)
        'true'
    """
    if isinstance(key, str):
        return key
    if key is None:
        return ""
    if isinstance(key, bool):
        return "true" if key else "false"
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="replace")
    return str(key)


def underscore(name: Any) -> str:
    """Convert a model name to lower snake case.

    Case and separators are ignored, so ``"BlogPost"``, ``"blog_post"``,
    ``"blog-post"`` and ``"Blog Post"`` all map to ``"blog_post"``. Module
    separators (``::`` and ``.``) become ``/``.

    Args:
        name: Model name (str or anything with a meaningful ``str()``)

    Returns:
        Normalized registry key
    """
    value = normalize_key(name).strip()
    value = value.replace("::", "/").replace(".", "/")
    value = _ACRONYM_BOUNDARY.sub(r"\1_\2", value)
    value = _WORD_BOUNDARY.sub(r"\1_\2", value)
    value = _SEPARATORS.sub("_", value)
    return value.lower()
