"""Requirement normalization.

Turns a loosely-shaped declaration mapping into a canonical one with every
field the engine relies on present.  Malformed input is a usage error and is
raised immediately; it is never folded into the report as a warning.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class RequirementsUsageError(ValueError):
    """Raised when declarations are malformed (programmer or integration error)."""


def _is_numeric_key(key: object) -> bool:
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return True
    return isinstance(key, str) and key.strip().isdigit()


def normalize_requirement(requirement: Mapping[str, Any], key: object = 0) -> dict[str, Any]:
    """Return a copy of *requirement* with defaults applied.

    Parameters
    ----------
    requirement:
        The raw declaration.  Must contain a ``condition`` key.
    key:
        Position (or label) of the declaration in its batch.  Used to name
        declarations that carry no ``name``.

    Returns
    -------
    dict[str, Any]
        The declaration with ``name``, ``mandatory`` and ``memo`` filled in.
        Other keys are left untouched.

    Raises
    ------
    RequirementsUsageError
        If *requirement* is not a mapping or has no ``condition``.
    """
    if not isinstance(requirement, Mapping):
        raise RequirementsUsageError("Requirement must be a mapping!")

    if "condition" not in requirement:
        raise RequirementsUsageError(f"Requirement '{key}' has no condition!")

    normalized = dict(requirement)

    if "name" not in normalized:
        normalized["name"] = f"Requirement #{key}" if _is_numeric_key(key) else str(key)

    if "mandatory" not in normalized:
        normalized["mandatory"] = normalized.get("required", False)

    normalized.setdefault("memo", "")

    return normalized
