"""Core platform requirements.

Builds the standard declarations every installation is checked against:
interpreter version, required distributions and extension modules, run-time
configuration, memory, transcoding, and -- when the inputs are available --
database and web root checks.  Application-specific requirements are added
on top by calling :meth:`RequirementsChecker.check` again.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from preflight_core.requirements.models import WebrootContext
from preflight_core.requirements.probes.runtime_config import (
    InterpreterFlagsConfig,
    MemoryTier,
    check_ini_off,
    classify_memory,
)
from preflight_core.requirements.probes.versions import (
    check_extension_loaded,
    check_extension_version,
    check_python_version,
    python_version,
)

if TYPE_CHECKING:
    from preflight_core.requirements.engine import RequirementsChecker

# (distribution, minimum version, mandatory)
REQUIRED_DISTRIBUTIONS: tuple[tuple[str, str, bool], ...] = (
    ("pydantic", "2.0", True),
    ("SQLAlchemy", "2.0", True),
    ("PyYAML", "6.0", True),
)

# (module, mandatory, memo)
EXTENSION_MODULES: tuple[tuple[str, bool, str], ...] = (
    ("ssl", True, "The ssl module is required for encrypted connections."),
    ("zlib", True, "The zlib module is required for compressed backups and downloads."),
    ("sqlite3", False, "The sqlite3 module is required for local development databases."),
    ("unicodedata", True, "The unicodedata module is required for multibyte string handling."),
    ("ctypes", False, "The ctypes module is required by some image processing backends."),
)


def _interpreter_requirements(checker: RequirementsChecker) -> list[dict[str, Any]]:
    minimum = checker.settings.min_python_version
    return [
        {
            "name": "Python version",
            "mandatory": True,
            "condition": check_python_version(minimum),
            "memo": f"Python {minimum} or higher is required (running {python_version()}).",
        },
        {
            "name": "Assertions and docstrings kept (PYTHONOPTIMIZE off)",
            "mandatory": False,
            "condition": check_ini_off(InterpreterFlagsConfig(), "optimize"),
            "memo": "Running with -O or PYTHONOPTIMIZE strips assertions and docstrings some plugins rely on.",
        },
    ]


def _package_requirements() -> list[dict[str, Any]]:
    declarations: list[dict[str, Any]] = []
    for distribution, minimum, mandatory in REQUIRED_DISTRIBUTIONS:
        declarations.append(
            {
                "name": f"{distribution} package",
                "mandatory": mandatory,
                "condition": check_extension_version(distribution, minimum),
                "memo": f"{distribution} {minimum} or higher is required.",
            }
        )
    for module, mandatory, memo in EXTENSION_MODULES:
        declarations.append(
            {
                "name": f"{module} extension",
                "mandatory": mandatory,
                "condition": check_extension_loaded(module),
                "memo": memo,
            }
        )
    return declarations


def _runtime_requirements(checker: RequirementsChecker) -> list[dict[str, Any]]:
    ini_set = checker.check_ini_set()
    memory = checker.check_memory()
    transcoding = checker.check_transcoding()
    return [
        {
            "name": "Run-time configuration changes",
            "mandatory": True,
            "condition": ini_set,
            "memo": checker.ini_set_message,
        },
        {
            "name": "Memory limit",
            "mandatory": classify_memory(checker.memory_limit()) == MemoryTier.INSUFFICIENT,
            "condition": memory,
            "memo": checker.memory_message,
        },
        {
            "name": "Transcoding",
            "mandatory": False,
            "condition": transcoding,
            "memo": checker.transcoding_message,
        },
    ]


def _database_requirements(checker: RequirementsChecker) -> list[dict[str, Any]]:
    if not checker.check_database_creds():
        return []

    connected = checker.check_database_connection()
    declarations: list[dict[str, Any]] = [
        {
            "name": "Database connection",
            "mandatory": True,
            "condition": connected,
            "memo": checker.db_connection_error or "A connection could be established with the supplied credentials.",
        },
    ]
    probe = checker.database
    if not connected or probe is None:
        return declarations

    declarations.append(
        {
            "name": "Database server version",
            "mandatory": True,
            "condition": checker.check_database_server_version(),
            "memo": f"Database server {probe.required_version()} or higher is required "
            f"(found {probe.server_version() or 'unknown'}).",
        }
    )
    if probe.driver == "mysql":
        declarations.append(
            {
                "name": "MySQL InnoDB support",
                "mandatory": True,
                "condition": checker.is_innodb_supported(),
                "memo": "The InnoDB storage engine must be installed and enabled.",
            }
        )
    return declarations


def _webroot_requirements(
    checker: RequirementsChecker,
    folders: Mapping[str, str | os.PathLike[str]] | None,
    context: WebrootContext | None,
) -> list[dict[str, Any]]:
    if not folders or context is None:
        return []
    condition = checker.check_webroot(folders, context)
    return [
        {
            "name": "Sensitive folders should not be publicly accessible",
            "mandatory": False,
            "condition": condition,
            "memo": checker.webroot_message or "None of the sensitive folders are reachable from the web root.",
        }
    ]


def build_platform_requirements(
    checker: RequirementsChecker,
    *,
    webroot_folders: Mapping[str, str | os.PathLike[str]] | None = None,
    webroot_context: WebrootContext | None = None,
) -> list[dict[str, Any]]:
    """Run the core probes and return their declarations, in display order.

    Database checks are included only when credentials can be resolved;
    the web root check only when both folders and a context are given.

    Raises
    ------
    UnsupportedDriverError
        If the credentials name a driver family with no known minimum.
    """
    return [
        *_interpreter_requirements(checker),
        *_package_requirements(),
        *_runtime_requirements(checker),
        *_database_requirements(checker),
        *_webroot_requirements(checker, webroot_folders, webroot_context),
    ]
