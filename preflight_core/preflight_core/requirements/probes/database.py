"""Database connectivity, server version and storage engine probes.

A :class:`DatabaseProbe` opens at most one connection, on first use, and
reuses it for every later probe.  Connection failures never raise: they are
recorded in :attr:`DatabaseProbe.connection_error` and turn the probe's
condition False.  The only error that escapes is
:class:`UnsupportedDriverError`, because a driver family without a known
minimum version cannot be evaluated at all.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from preflight_core.requirements.models import DatabaseCredentials
from preflight_core.requirements.probes.versions import compare_versions

logger = logging.getLogger(__name__)

# Driver family -> SQLAlchemy drivername.  Other driver strings are passed
# through to SQLAlchemy unchanged.
DRIVER_FAMILIES: dict[str, str] = {
    "mysql": "mysql+pymysql",
    "pgsql": "postgresql+psycopg2",
}

DEFAULT_MINIMUM_VERSIONS: dict[str, str] = {
    "mysql": "5.5.0",
    "pgsql": "9.5",
}

CONNECTION_ERROR_MESSAGE = (
    "Can't connect to the database with the credentials supplied. Please double check them and try again."
)

TRANSACTIONAL_ENGINE = "innodb"


class UnsupportedDriverError(Exception):
    """Raised when the credentials name a driver family with no known minimum version."""


class DatabaseProbe:
    """Lazily-connected probe for a single set of credentials.

    Parameters
    ----------
    credentials:
        Connection details.  Held for the lifetime of the probe only.
    engine_factory:
        Callable building a SQLAlchemy :class:`Engine` from a URL.
        Defaults to :func:`sqlalchemy.create_engine`.
    minimum_versions:
        Driver family -> minimum server version.  Defaults to
        :data:`DEFAULT_MINIMUM_VERSIONS`.
    """

    def __init__(
        self,
        credentials: DatabaseCredentials,
        *,
        engine_factory: Callable[..., Engine] | None = None,
        minimum_versions: Mapping[str, str] | None = None,
    ) -> None:
        self._credentials = credentials
        self._engine_factory = engine_factory or create_engine
        self._minimum_versions = dict(minimum_versions or DEFAULT_MINIMUM_VERSIONS)
        self._engine: Engine | None = None
        self._connection: Connection | None = None
        self._attempted = False
        self.connection_error: str | None = None

    @property
    def driver(self) -> str:
        return self._credentials.driver

    def build_url(self) -> URL:
        creds = self._credentials
        return URL.create(
            drivername=DRIVER_FAMILIES.get(creds.driver, creds.driver),
            username=creds.user,
            password=creds.password.get_secret_value(),
            host=creds.server,
            port=creds.port,
            database=creds.database,
        )

    def connection(self) -> Connection | None:
        """Return the shared connection, opening it on first call.

        A failed attempt is not retried; later calls return None.
        """
        if self._connection is not None or self._attempted:
            return self._connection

        self._attempted = True
        try:
            self._engine = self._engine_factory(self.build_url())
            self._connection = self._engine.connect()
        except (SQLAlchemyError, ImportError, OSError) as exc:
            logger.warning(
                "Database connection to %s failed: %s",
                self._credentials.server,
                exc,
                extra={"requirement": "Database connection"},
            )
            self.connection_error = CONNECTION_ERROR_MESSAGE
            self._connection = None

        return self._connection

    def check_connection(self) -> bool:
        return self.connection() is not None

    def server_version(self) -> str | None:
        """Return the server version reported by the dialect, e.g. ``"8.0.33"``."""
        conn = self.connection()
        if conn is None:
            return None
        info = conn.dialect.server_version_info
        if not info:
            return None
        return ".".join(str(part) for part in info if isinstance(part, int))

    def required_version(self) -> str:
        """Return the minimum server version for the configured driver family.

        Raises
        ------
        UnsupportedDriverError
            If the driver family has no configured minimum.
        """
        try:
            return self._minimum_versions[self.driver]
        except KeyError:
            raise UnsupportedDriverError(f"Unsupported connection type: {self.driver}") from None

    def check_server_version(self) -> bool:
        """Check the server version against the family's minimum.

        Raises
        ------
        UnsupportedDriverError
            If connected with a driver family that has no known minimum.
        """
        if self.connection() is None:
            return False

        required = self.required_version()
        found = self.server_version()
        if not found:
            return False

        return compare_versions(found, required, ">=")

    def check_transactional_engine(self, engine_name: str = TRANSACTIONAL_ENGINE) -> bool:
        """Return True if *engine_name* is listed by ``SHOW ENGINES`` and enabled."""
        conn = self.connection()
        if conn is None:
            return False

        try:
            rows = conn.execute(text("SHOW ENGINES")).mappings().all()
        except SQLAlchemyError as exc:
            logger.warning("Could not list storage engines: %s", exc)
            return False

        wanted = engine_name.lower()
        for row in rows:
            if str(row["Engine"]).lower() == wanted and str(row["Support"]).lower() != "no":
                return True
        return False

    def close(self) -> None:
        """Release the connection and engine, if any were opened."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
