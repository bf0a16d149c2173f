"""Bootstrap version extraction from templates."""

from __future__ import annotations

import math
import re
from typing import Any

from .props import BOOTSTRAP_VERSION_OUTPUT, BOOTSTRAP_VERSION_RESOURCE

# Leading ASCII integer, the way a standard integer parse reads "7", " 7" or "7-beta"
_LEADING_INT_RE = re.compile(r"^\s*([+-]?[0-9]+)")


def bootstrap_version_from_template(template: Any) -> int:
    """Read the bootstrap version a template declares.

    Looks at the ``BootstrapVersion`` output value first, then at the
    ``Value`` property of the ``CdkBootstrapVersion`` resource. The first
    candidate holding a number, or a string starting with an integer, wins.

    Args:
        template: Parsed template document.

    Returns:
        The declared version, or 0 if the template declares none.
    """
    candidates = [
        _dig(template, "Outputs", BOOTSTRAP_VERSION_OUTPUT, "Value"),
        _dig(template, "Resources", BOOTSTRAP_VERSION_RESOURCE, "Properties", "Value"),
    ]

    for candidate in candidates:
        version = parse_version_marker(candidate)
        if version is not None:
            return version
    return 0


def _dig(document: Any, *path: str) -> Any:
    """Follow a key path through nested mappings, None if any step is missing."""
    current = document
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def parse_version_marker(value: Any) -> int | None:
    """Interpret a single version marker value, None if it holds no version."""
    # bool is an int subclass but never a version
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        if math.isfinite(value) and value >= 0:
            return int(value)
        return None
    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value)
        if match:
            parsed = int(match.group(1))
            return parsed if parsed >= 0 else None
    return None
