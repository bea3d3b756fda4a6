"""Load requirement declarations and database credentials from data files.

Declaration files are plain data -- YAML, JSON or TOML -- and are never
executed.  Typical usage::

    declarations = load_declarations(Path("requirements.yaml"))
    checker.check(declarations)

A YAML or JSON file holds either a list of declarations or a mapping of
label -> declaration.  TOML has no top-level arrays, so TOML files keep the
list under a ``requirements`` key (``[[requirements]]`` tables).
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from preflight_core.requirements.models import DatabaseCredentials

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})
_REQUIRED_CREDENTIAL_KEYS = ("server", "user", "password", "database", "driver")


class DeclarationLoadError(Exception):
    """Raised when a declaration or credential file cannot be read or parsed."""


def _parse_file(path: Path) -> Any:
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DeclarationLoadError(f"Failed to read {path}: {exc}") from exc

    try:
        if suffix in _YAML_SUFFIXES:
            return yaml.safe_load(text)
        if suffix == ".json":
            return json.loads(text)
        if suffix == ".toml":
            return tomllib.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise DeclarationLoadError(f"Failed to parse {path}: {exc}") from exc

    raise DeclarationLoadError(f"Unsupported declaration file type: {path.name} (expected .yaml, .yml, .json or .toml)")


def load_declarations(path: str | Path) -> Any:
    """Load the declarations stored at *path*.

    The parsed value is returned as-is (after unwrapping a top-level
    ``requirements`` key); validating its shape is the engine's job.

    Raises
    ------
    DeclarationLoadError
        If the file cannot be read, parsed, or has an unknown suffix.
    """
    path = Path(path)
    data = _parse_file(path)

    if isinstance(data, dict) and set(data) == {"requirements"}:
        data = data["requirements"]

    logger.debug("Loaded declarations from %s", path)
    return data


def load_credentials(path: str | Path) -> DatabaseCredentials | None:
    """Load database credentials from *path*.

    Returns ``None`` when the file does not exist or when any of
    ``server``, ``user``, ``password``, ``database`` and ``driver`` is
    missing or empty.  A ``db`` section is unwrapped if present.

    Raises
    ------
    DeclarationLoadError
        If the file exists but cannot be parsed.
    """
    path = Path(path)
    if not path.is_file():
        logger.debug("No credential file at %s", path)
        return None

    data = _parse_file(path)
    if isinstance(data, dict) and isinstance(data.get("db"), dict):
        data = data["db"]

    if not isinstance(data, dict):
        return None

    if not all(data.get(key) for key in _REQUIRED_CREDENTIAL_KEYS):
        logger.debug("Credential file %s is incomplete", path)
        return None

    try:
        return DatabaseCredentials(
            driver=str(data["driver"]),
            server=str(data["server"]),
            database=str(data["database"]),
            user=str(data["user"]),
            password=str(data["password"]),
            port=data.get("port") or None,
        )
    except ValidationError as exc:
        raise DeclarationLoadError(f"Invalid credentials in {path}: {exc}") from exc
