"""Logging setup for preflight runs.

Two output modes are supported:

* plain text via :func:`logging.basicConfig` (the default), and
* single-line JSON records via :class:`JSONFormatter` when
  ``PREFLIGHT_STRUCTURED_LOGGING=true``, for log aggregators that index
  fields without regex parsing.

Output schema per JSON line::

    {
        "timestamp": "2025-05-15T12:34:56.789012+00:00",
        "level": "WARNING",
        "logger": "preflight_core.requirements.probes.database",
        "message": "database connection failed",
        "requirement": "Database connection",   // present when passed via extra=
        "exc_info": "Traceback ..."              // present only on exceptions
    }
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from preflight_core.config import Settings

_TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        requirement = getattr(record, "requirement", None)
        if requirement is not None:
            payload["requirement"] = requirement

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(settings: Settings) -> None:
    """Install root handlers according to *settings*.

    Safe to call more than once; existing root handlers are replaced when
    structured logging is enabled.
    """
    level = logging.DEBUG if settings.debug else logging.WARNING

    if settings.structured_logging:
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root_logger.addHandler(handler)
        root_logger.setLevel(level)
        return

    logging.basicConfig(level=level, format=_TEXT_FORMAT)
