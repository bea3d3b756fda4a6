"""Package, module and interpreter version probes."""

from __future__ import annotations

import importlib.metadata
import importlib.util
import logging
import operator
import sys
from collections.abc import Callable
from typing import Any

from packaging import version

logger = logging.getLogger(__name__)

# Prefixes some distributions put in front of their version string.
_PACKAGING_TAGS: tuple[str, ...] = ("pecl-", "release-", "v")

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    ">=": operator.ge,
    "ge": operator.ge,
    ">": operator.gt,
    "gt": operator.gt,
    "<=": operator.le,
    "le": operator.le,
    "<": operator.lt,
    "lt": operator.lt,
    "==": operator.eq,
    "eq": operator.eq,
    "!=": operator.ne,
    "ne": operator.ne,
}


def strip_packaging_tag(raw: str) -> str:
    """Remove a leading packaging tag such as ``PECL-`` or ``v``."""
    text = raw.strip()
    lowered = text.lower()
    for tag in _PACKAGING_TAGS:
        if lowered.startswith(tag) and len(text) > len(tag):
            return text[len(tag) :]
    return text


def compare_versions(installed: str, required: str, compare: str = ">=") -> bool:
    """Compare two version strings with the operator named by *compare*.

    Raises
    ------
    ValueError
        If *compare* is not a known operator.
    """
    try:
        op = _COMPARATORS[compare.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown version comparison operator: {compare!r}") from None

    try:
        return op(version.parse(strip_packaging_tag(installed)), version.parse(required))
    except version.InvalidVersion:
        logger.debug("Cannot compare version %r with %r", installed, required)
        return False


def installed_version(distribution: str) -> str | None:
    """Return the installed version of *distribution*, or None when absent."""
    try:
        return importlib.metadata.version(distribution)
    except importlib.metadata.PackageNotFoundError:
        return None


def check_extension_version(distribution: str, required: str, compare: str = ">=") -> bool:
    """Check that *distribution* is installed and its version satisfies *compare*.

    A distribution that reports no version never satisfies the check.
    """
    found = installed_version(distribution)
    if not found:
        return False
    return compare_versions(found, required, compare)


def check_extension_loaded(module: str) -> bool:
    """Return True if *module* can be imported in this interpreter."""
    if module in sys.modules:
        return True
    try:
        return importlib.util.find_spec(module) is not None
    except (ImportError, ValueError):
        return False


def python_version() -> str:
    info = sys.version_info
    return f"{info.major}.{info.minor}.{info.micro}"


def check_python_version(minimum: str) -> bool:
    """Return True if the running interpreter is at least *minimum*."""
    return compare_versions(python_version(), minimum, ">=")
