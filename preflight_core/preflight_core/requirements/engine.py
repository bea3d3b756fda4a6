"""Requirements checker -- folds requirement declarations into one report.

The :class:`RequirementsChecker` normalizes each declaration, classifies it
as pass, warning or error, and appends it to a cumulative
:class:`AggregateResult`.  :meth:`RequirementsChecker.check` may be called
any number of times; every batch is appended in order, so core requirements
and application-specific requirements end up in one report::

    checker = RequirementsChecker()
    checker.check_platform().check(Path("requirements.yaml"))
    result = checker.get_result()

The checker also owns the state a few probes need between calls: the
database connection (opened lazily, shared by every database probe) and
the explanatory message each probe leaves behind for display.
"""

from __future__ import annotations

import logging
import os
import platform
import socket
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy.engine import Engine

from preflight_core.config import Settings, load_settings
from preflight_core.requirements.loader import load_credentials, load_declarations
from preflight_core.requirements.models import (
    AggregateResult,
    DatabaseCredentials,
    NormalizedRequirement,
    WebrootContext,
)
from preflight_core.requirements.normalizer import RequirementsUsageError, normalize_requirement
from preflight_core.requirements.probes import runtime_config as runtime_probes
from preflight_core.requirements.probes.database import DatabaseProbe
from preflight_core.requirements.probes.encoding import Transcoder, check_transcoding, default_transcoder
from preflight_core.requirements.probes.runtime_config import (
    MEMORY_LIMIT,
    EnvironRuntimeConfig,
    RuntimeConfig,
    process_memory_limit,
)
from preflight_core.requirements.probes.webroot import check_webroot

logger = logging.getLogger(__name__)

DeclarationLoader = Callable[[Path], Any]
CredentialProvider = Callable[[], "DatabaseCredentials | None"]


def _type_name(value: object) -> str:
    return type(value).__name__


class RequirementsChecker:
    """Check requirement declarations and collect a cumulative report.

    Parameters
    ----------
    settings:
        Preflight settings.  Loaded from the environment when ``None``.
    loader:
        Callable turning a declaration file path into declarations.
        Defaults to :func:`load_declarations`.
    credentials:
        Database credentials, when already known.
    credential_provider:
        Callable returning credentials from a running application.  Used
        when neither *credentials* nor the configured credential file
        supply them.
    runtime_config:
        Store probed by the memory and mutability checks.  Defaults to an
        :class:`EnvironRuntimeConfig` with the configured prefix.
    engine_factory:
        Passed to :class:`DatabaseProbe` to build SQLAlchemy engines.
    transcoder:
        Transcoder probed for the truncation defect.  Defaults to the
        :mod:`codecs` based transcoder.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        loader: DeclarationLoader | None = None,
        credentials: DatabaseCredentials | None = None,
        credential_provider: CredentialProvider | None = None,
        runtime_config: RuntimeConfig | None = None,
        engine_factory: Callable[..., Engine] | None = None,
        transcoder: Transcoder | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._loader = loader or load_declarations
        self._credential_provider = credential_provider
        self._engine_factory = engine_factory
        self._transcoder = transcoder if transcoder is not None else default_transcoder()
        self.runtime_config = runtime_config or EnvironRuntimeConfig(prefix=self.settings.runtime_env_prefix)

        self.db_credentials: DatabaseCredentials | None = credentials
        self._database: DatabaseProbe | None = None
        self._result: AggregateResult | None = None

        # Explanations left behind by the probes, for display next to the
        # requirement they feed.
        self.transcoding_message: str = ""
        self.ini_set_message: str = ""
        self.memory_message: str = ""
        self.webroot_message: str = ""

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def check(
        self,
        requirements: Sequence[Mapping[str, Any]] | Mapping[str, Any] | str | os.PathLike[str],
    ) -> RequirementsChecker:
        """Check *requirements* and append them to the result.

        Parameters
        ----------
        requirements:
            A list of declarations, a mapping of label -> declaration, or
            the path of a declaration file resolved through the loader.

        Returns
        -------
        RequirementsChecker
            ``self``, so batches can be chained.

        Raises
        ------
        RequirementsUsageError
            If the declarations are not a list/mapping, or any declaration
            is malformed.
        """
        if isinstance(requirements, (str, os.PathLike)):
            requirements = self._loader(Path(requirements))

        if isinstance(requirements, Mapping):
            items: list[tuple[object, Any]] = list(requirements.items())
        elif isinstance(requirements, Sequence) and not isinstance(requirements, (str, bytes, bytearray)):
            items = list(enumerate(requirements))
        else:
            raise RequirementsUsageError(f'Requirements must be a list, "{_type_name(requirements)}" has been given!')

        if self._result is None:
            self._result = AggregateResult()

        result = self._result
        for key, raw in items:
            normalized = normalize_requirement(raw, key)
            result.summary.total += 1

            if not normalized["condition"]:
                if normalized["mandatory"]:
                    normalized["error"] = True
                    normalized["warning"] = True
                    result.summary.errors += 1
                else:
                    normalized["error"] = False
                    normalized["warning"] = True
                    result.summary.warnings += 1
            else:
                normalized["error"] = False
                normalized["warning"] = False

            requirement = NormalizedRequirement.model_validate(normalized)
            result.requirements.append(requirement)
            logger.debug(
                "Requirement %s: condition=%s error=%s warning=%s",
                requirement.name,
                requirement.condition,
                requirement.error,
                requirement.warning,
            )

        return self

    def get_result(self) -> AggregateResult | None:
        """Return the cumulative result, or None if nothing was checked yet."""
        return self._result

    def check_platform(
        self,
        *,
        webroot_folders: Mapping[str, str | os.PathLike[str]] | None = None,
        webroot_context: WebrootContext | None = None,
    ) -> RequirementsChecker:
        """Check the core platform requirements (see :mod:`.platform`)."""
        from preflight_core.requirements.platform import build_platform_requirements

        declarations = build_platform_requirements(
            self,
            webroot_folders=webroot_folders,
            webroot_context=webroot_context,
        )
        return self.check(declarations)

    def render_context(self) -> dict[str, str]:
        """Return host details shown in report headers."""
        return {
            "server_info": self.server_info(),
            "current_date": self.current_date(),
            "python_version": platform.python_version(),
            "platform": platform.platform(),
        }

    @staticmethod
    def server_info() -> str:
        return os.environ.get("SERVER_SOFTWARE") or socket.gethostname()

    @staticmethod
    def current_date() -> str:
        return datetime.now().strftime("%Y-%m-%d %H:%M")

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    def check_database_creds(self) -> bool:
        """Resolve database credentials.

        Looks at explicitly supplied credentials, then the configured
        credential file, then the running application's provider.
        """
        if self.db_credentials is not None:
            return True

        if self.settings.db_config_path is not None:
            self.db_credentials = load_credentials(self.settings.db_config_path)
            if self.db_credentials is not None:
                return True

        if self._credential_provider is not None:
            self.db_credentials = self._credential_provider()

        return self.db_credentials is not None

    @property
    def database(self) -> DatabaseProbe | None:
        """The database probe, created on first access once credentials exist."""
        if self._database is None and self.check_database_creds() and self.db_credentials is not None:
            self._database = DatabaseProbe(
                self.db_credentials,
                engine_factory=self._engine_factory,
                minimum_versions={
                    "mysql": self.settings.required_mysql_version,
                    "pgsql": self.settings.required_pgsql_version,
                },
            )
        return self._database

    @property
    def db_connection_error(self) -> str | None:
        return self._database.connection_error if self._database is not None else None

    def check_database_connection(self) -> bool:
        probe = self.database
        return probe is not None and probe.check_connection()

    def check_database_server_version(self) -> bool:
        """Compare the server version against the driver family's minimum.

        Raises
        ------
        UnsupportedDriverError
            If the credentials name an unsupported driver family.
        """
        probe = self.database
        return probe is not None and probe.check_server_version()

    def is_innodb_supported(self) -> bool:
        probe = self.database
        return probe is not None and probe.check_transactional_engine()

    def close(self) -> None:
        """Release the database connection, if one was opened."""
        if self._database is not None:
            self._database.close()

    # ------------------------------------------------------------------
    # Probes that leave a message behind
    # ------------------------------------------------------------------

    def check_transcoding(self) -> bool:
        outcome = check_transcoding(self._transcoder)
        self.transcoding_message = outcome.message
        return outcome.condition

    def check_ini_set(self) -> bool:
        outcome = runtime_probes.check_ini_set(self.runtime_config, app_name=self.settings.app_name)
        self.ini_set_message = outcome.message
        return outcome.condition

    def memory_limit(self) -> str:
        return self.runtime_config.get(MEMORY_LIMIT) or process_memory_limit()

    def check_memory(self) -> bool:
        outcome = runtime_probes.check_memory(self.memory_limit(), app_name=self.settings.app_name)
        self.memory_message = outcome.message
        return outcome.condition

    def check_webroot(
        self,
        folders: Mapping[str, str | os.PathLike[str]],
        context: WebrootContext,
    ) -> bool:
        outcome = check_webroot(folders, context, app_name=self.settings.app_name)
        self.webroot_message = outcome.message
        return outcome.condition

    def check_ini_on(self, name: str) -> bool:
        return runtime_probes.check_ini_on(self.runtime_config, name)

    def check_ini_off(self, name: str) -> bool:
        return runtime_probes.check_ini_off(self.runtime_config, name)
