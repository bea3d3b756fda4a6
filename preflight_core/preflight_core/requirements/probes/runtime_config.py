"""Runtime configuration probes.

A :class:`RuntimeConfig` is a small named-value store modelled on an
interpreter's ini-style settings: values are read as strings and may be
changed at run time unless the host has locked them.  Three stores are
provided:

* :class:`MappingRuntimeConfig` -- in-memory values, optionally with keys
  that refuse mutation.
* :class:`EnvironRuntimeConfig` -- process environment variables under a
  prefix.
* :class:`InterpreterFlagsConfig` -- read-only view of :data:`sys.flags`.

The probes in this module read flags from a store, test whether the store
accepts changes, and classify the effective memory limit.
"""

from __future__ import annotations

import abc
import logging
import os
import re
import sys
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from enum import Enum

from preflight_core.requirements.models import ProbeOutcome
from preflight_core.requirements.probes.sizes import get_byte_size

try:
    import resource
except ImportError:  # Windows
    resource = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

MEMORY_LIMIT = "memory_limit"
INI_SET_SENTINEL = "442M"

# Memory tiers in bytes.
MEMORY_HARD_MINIMUM = 32 * 1024 * 1024
MEMORY_SOFT_MINIMUM = 128 * 1024 * 1024

_LEADING_INT_RE = re.compile(r"^\s*[+-]?\d+")


class ConfigMutationDisabled(Exception):
    """Raised by a store when run-time changes to a value are not allowed."""


class RuntimeConfig(abc.ABC):
    """Named configuration values that may be read and changed at run time."""

    @abc.abstractmethod
    def get(self, name: str) -> str | None:
        """Return the current value of *name*, or ``None`` when unset."""

    @abc.abstractmethod
    def set(self, name: str, value: str | None) -> None:
        """Change *name* to *value* (``None`` unsets it).

        Raises
        ------
        ConfigMutationDisabled
            If the store refuses run-time changes to *name*.
        """


class MappingRuntimeConfig(RuntimeConfig):
    """In-memory store.  Keys listed in *locked* refuse mutation."""

    def __init__(
        self,
        values: Mapping[str, str] | None = None,
        *,
        locked: frozenset[str] | set[str] | None = None,
    ) -> None:
        self._values: dict[str, str] = dict(values or {})
        self._locked = frozenset(locked or ())

    def get(self, name: str) -> str | None:
        return self._values.get(name)

    def set(self, name: str, value: str | None) -> None:
        if name in self._locked:
            raise ConfigMutationDisabled(f"{name} is locked")
        if value is None:
            self._values.pop(name, None)
        else:
            self._values[name] = value


def process_memory_limit() -> str:
    """Address-space limit of this process as a byte string, ``-1`` if unlimited."""
    if resource is None:
        return "-1"
    soft, _hard = resource.getrlimit(resource.RLIMIT_AS)
    if soft == resource.RLIM_INFINITY:
        return "-1"
    return str(soft)


class EnvironRuntimeConfig(RuntimeConfig):
    """Store backed by environment variables named ``<prefix><NAME>``."""

    def __init__(
        self,
        prefix: str = "PREFLIGHT_INI_",
        environ: MutableMapping[str, str] | None = None,
    ) -> None:
        self._prefix = prefix
        self._environ = os.environ if environ is None else environ

    def _key(self, name: str) -> str:
        return f"{self._prefix}{name.upper()}"

    def get(self, name: str) -> str | None:
        return self._environ.get(self._key(name))

    def set(self, name: str, value: str | None) -> None:
        if value is None:
            self._environ.pop(self._key(name), None)
        else:
            self._environ[self._key(name)] = value


class InterpreterFlagsConfig(RuntimeConfig):
    """Read-only view of the interpreter's :data:`sys.flags`.

    Names match the attributes of ``sys.flags`` (``optimize``,
    ``dont_write_bytecode``, ``utf8_mode`` ...).  Every change is refused.
    """

    def get(self, name: str) -> str | None:
        value = getattr(sys.flags, name, None)
        if value is None:
            return None
        return str(int(value))

    def set(self, name: str, value: str | None) -> None:
        raise ConfigMutationDisabled("interpreter flags are fixed at start-up")


# ---------------------------------------------------------------------------
# Flag probes
# ---------------------------------------------------------------------------


def _is_empty(value: str | None) -> bool:
    return value is None or value.strip() in ("", "0")


def check_ini_on(config: RuntimeConfig, name: str) -> bool:
    """Return True if the option *name* is on (``1`` or ``On``)."""
    value = config.get(name)

    if value is None or _is_empty(value):
        return False

    match = _LEADING_INT_RE.match(value)
    if match is not None and int(match.group()) == 1:
        return True
    return value.strip().lower() == "on"


def check_ini_off(config: RuntimeConfig, name: str) -> bool:
    """Return True if the option *name* is off (unset, empty, ``0`` or ``Off``)."""
    value = config.get(name)

    if value is None or _is_empty(value):
        return True

    return value.strip().lower() == "off"


# ---------------------------------------------------------------------------
# Mutability probe
# ---------------------------------------------------------------------------


@contextmanager
def scoped_setting(config: RuntimeConfig, name: str, value: str) -> Iterator[str | None]:
    """Set *name* to *value* for the duration of the block.

    Yields the original value.  The original is restored on exit however
    the block ends; a store that refuses the change raises
    :class:`ConfigMutationDisabled` before the block runs.
    """
    original = config.get(name)
    config.set(name, value)
    try:
        yield original
    finally:
        try:
            config.set(name, original)
        except ConfigMutationDisabled:
            logger.warning("Could not restore %s to its original value", name)


def check_ini_set(
    config: RuntimeConfig,
    name: str = MEMORY_LIMIT,
    sentinel: str = INI_SET_SENTINEL,
    *,
    app_name: str = "the application",
) -> ProbeOutcome:
    """Probe whether run-time configuration changes take effect.

    Returns
    -------
    ProbeOutcome
        ``condition`` is False only when changes are refused outright.  A
        change that is accepted but has no effect is reported as a warning
        message with ``condition`` True so it is not treated as fatal.
    """
    try:
        with scoped_setting(config, name, sentinel):
            observed = config.get(name)
    except ConfigMutationDisabled:
        logger.debug("Run-time change of %s refused", name)
        return ProbeOutcome(
            False,
            f"It looks like run-time configuration changes have been disabled. They are required for {app_name} to operate.",
        )

    if observed != sentinel:
        return ProbeOutcome(
            True,
            f"It appears run-time configuration changes are not taking effect for {app_name}. "
            f"You may need to raise settings such as {name} in the host configuration "
            "for long running operations.",
        )

    return ProbeOutcome(True, "Run-time configuration changes are working correctly.")


# ---------------------------------------------------------------------------
# Memory probe
# ---------------------------------------------------------------------------


class MemoryTier(str, Enum):
    """How the memory limit compares with the fixed thresholds."""

    INSUFFICIENT = "INSUFFICIENT"
    LOW = "LOW"
    SUFFICIENT = "SUFFICIENT"


def classify_memory(memory_limit: str | int | None) -> MemoryTier:
    """Place *memory_limit* in a tier.  Negative limits mean unlimited."""
    limit_bytes = get_byte_size(memory_limit)

    if limit_bytes < 0:
        return MemoryTier.SUFFICIENT
    if limit_bytes <= MEMORY_HARD_MINIMUM:
        return MemoryTier.INSUFFICIENT
    if limit_bytes <= MEMORY_SOFT_MINIMUM:
        return MemoryTier.LOW
    return MemoryTier.SUFFICIENT


def check_memory(memory_limit: str | None, *, app_name: str = "the application") -> ProbeOutcome:
    """Check *memory_limit* against the 32 MiB and 128 MiB thresholds.

    Both the insufficient and the low tier produce a False condition with
    different messages; callers declare the requirement mandatory only for
    the insufficient tier (see :func:`classify_memory`).
    """
    tier = classify_memory(memory_limit)

    if tier == MemoryTier.SUFFICIENT and get_byte_size(memory_limit) < 0:
        return ProbeOutcome(True, "There is no memory limit in place.")

    if tier == MemoryTier.INSUFFICIENT:
        return ProbeOutcome(False, f"At least 32M of memory is required for {app_name} to operate smoothly.")

    if tier == MemoryTier.LOW:
        return ProbeOutcome(
            False,
            "You have 128M or less allocated, which should be fine for most workloads. "
            "If you will be processing very large files or backing up a large database, "
            "you might need to increase this to 256M or higher.",
        )

    return ProbeOutcome(True, f"There is {memory_limit} of memory allocated.")
