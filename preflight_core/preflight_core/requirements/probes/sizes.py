"""Human-readable byte sizes, e.g. ``"128M"`` or ``"2 GB"``."""

from __future__ import annotations

import math
import re

_MULTIPLIERS: dict[str, int] = {
    "k": 1024,
    "kb": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "g": 1024**3,
    "gb": 1024**3,
}

_INTEGER_RE = re.compile(r"^\s*[+-]?\d+\s*$")
_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_SIZE_RE = re.compile(r"^\s*(?P<size>.*?)\s*(?P<unit>[A-Za-z]+)\s*$")


def _parse_number(text: str) -> int | float:
    if _INTEGER_RE.match(text):
        return int(text)
    return float(text)


def _finite_int(value: int | float) -> int:
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


def get_byte_size(verbose_size: str | int | float | None) -> int:
    """Convert a verbose size representation to a byte count.

    ``"5K"`` becomes ``5 * 1024``.  Purely numeric input is returned as an
    integer unchanged (including negative values, which conventionally mean
    "unlimited"); integer strings keep full precision, decimal and exponent
    forms go through :class:`float`.  Anything that cannot be parsed,
    including NaN and infinities, yields ``0``.
    """
    if verbose_size is None or verbose_size == "":
        return 0

    if isinstance(verbose_size, bool):
        return int(verbose_size)

    if isinstance(verbose_size, (int, float)):
        return _finite_int(verbose_size)

    if _NUMERIC_RE.match(verbose_size):
        return _finite_int(_parse_number(verbose_size))

    match = _SIZE_RE.match(verbose_size)
    if match is None:
        return 0

    size = match.group("size")
    if not _NUMERIC_RE.match(size):
        return 0

    multiplier = _MULTIPLIERS.get(match.group("unit").lower())
    if multiplier is None:
        return 0

    return _finite_int(_parse_number(size) * multiplier)
