"""Unit tests for the preflight requirements checker.

Covers classification, cumulative aggregation across batches, declaration
sources, usage errors, and the core platform requirement set with the
database, runtime configuration and transcoder collaborators faked.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from preflight_core.config import Settings
from preflight_core.requirements.engine import RequirementsChecker
from preflight_core.requirements.models import DatabaseCredentials, NormalizedRequirement, WebrootContext
from preflight_core.requirements.normalizer import RequirementsUsageError
from preflight_core.requirements.probes.database import UnsupportedDriverError
from preflight_core.requirements.probes.encoding import codecs_transcoder
from preflight_core.requirements.probes.runtime_config import MappingRuntimeConfig

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_checker(
    *,
    memory_limit: str = "512M",
    locked: set[str] | None = None,
    credentials: DatabaseCredentials | None = None,
    engine_factory: MagicMock | None = None,
    loader: MagicMock | None = None,
) -> RequirementsChecker:
    return RequirementsChecker(
        settings=Settings(app_name="Acme"),
        runtime_config=MappingRuntimeConfig({"memory_limit": memory_limit}, locked=locked),
        credentials=credentials,
        engine_factory=engine_factory,
        transcoder=codecs_transcoder,
        loader=loader,
    )


def _mysql_credentials(driver: str = "mysql") -> DatabaseCredentials:
    return DatabaseCredentials(
        driver=driver,
        server="db.internal",
        database="acme",
        user="acme",
        password="secret",
    )


def _engine_factory(version: tuple = (8, 0, 33), engines: list[dict] | None = None) -> MagicMock:
    conn = MagicMock()
    conn.dialect.server_version_info = version
    conn.execute.return_value.mappings.return_value.all.return_value = engines or [
        {"Engine": "InnoDB", "Support": "DEFAULT"},
    ]
    engine = MagicMock()
    engine.connect.return_value = conn
    return MagicMock(return_value=engine)


def _by_name(checker: RequirementsChecker) -> dict[str, NormalizedRequirement]:
    result = checker.get_result()
    assert result is not None
    return {r.name: r for r in result.requirements}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassification:
    @pytest.mark.parametrize("mandatory", [True, False])
    def test_met_condition_is_clean(self, mandatory):
        checker = _make_checker().check([{"condition": True, "mandatory": mandatory}])
        result = checker.get_result()
        req = result.requirements[0]
        assert req.error is False
        assert req.warning is False
        assert result.summary.errors == 0
        assert result.summary.warnings == 0

    def test_unmet_mandatory_is_error(self):
        checker = _make_checker().check([{"condition": False, "mandatory": True}])
        result = checker.get_result()
        req = result.requirements[0]
        assert req.error is True
        assert req.warning is True
        assert result.summary.errors == 1
        assert result.summary.warnings == 0

    def test_unmet_optional_is_warning(self):
        checker = _make_checker().check([{"condition": False}])
        result = checker.get_result()
        req = result.requirements[0]
        assert req.error is False
        assert req.warning is True
        assert result.summary.errors == 0
        assert result.summary.warnings == 1

    def test_legacy_required_counts_as_error(self):
        checker = _make_checker().check([{"condition": False, "required": True}])
        assert checker.get_result().summary.errors == 1

    def test_stored_error_flag_overwritten(self):
        checker = _make_checker().check([{"condition": True, "error": True, "warning": True}])
        req = checker.get_result().requirements[0]
        assert req.error is False
        assert req.warning is False

    def test_records_are_frozen(self):
        checker = _make_checker().check([{"condition": True}])
        req = checker.get_result().requirements[0]
        with pytest.raises(Exception):
            req.error = True  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestAggregation:
    def test_no_result_before_check(self):
        assert _make_checker().get_result() is None

    def test_check_returns_self(self):
        checker = _make_checker()
        assert checker.check([]) is checker

    def test_empty_batch_creates_empty_result(self):
        result = _make_checker().check([]).get_result()
        assert result is not None
        assert result.summary.total == 0
        assert result.requirements == []

    def test_batches_accumulate_in_order(self):
        checker = _make_checker()
        checker.check([{"name": "a", "condition": True}, {"name": "b", "condition": False}])
        checker.check([{"name": "c", "condition": False, "mandatory": True}])
        result = checker.get_result()
        assert result.summary.total == 3
        assert [r.name for r in result.requirements] == ["a", "b", "c"]
        assert result.summary.errors == 1
        assert result.summary.warnings == 1

    def test_positional_names_restart_per_batch(self):
        checker = _make_checker().check([{"condition": True}]).check([{"condition": True}])
        assert [r.name for r in checker.get_result().requirements] == ["Requirement #0", "Requirement #0"]

    def test_mapping_labels_become_names(self):
        checker = _make_checker().check({"Disk": {"condition": True}, "Cache": {"condition": False}})
        assert [r.name for r in checker.get_result().requirements] == ["Disk", "Cache"]

    def test_passed_and_warning_properties(self):
        result = _make_checker().check([{"condition": False}]).get_result()
        assert result.passed is True
        assert result.has_warnings is True
        assert [r.name for r in result.warnings] == ["Requirement #0"]
        assert result.errors == []

    def test_extra_keys_survive(self):
        result = _make_checker().check([{"condition": True, "by": "docs"}]).get_result()
        assert result.requirements[0].model_dump()["by"] == "docs"


# ---------------------------------------------------------------------------
# Declaration sources and usage errors
# ---------------------------------------------------------------------------


class TestDeclarationSources:
    def test_path_is_resolved_through_loader(self, tmp_path):
        loader = MagicMock(return_value=[{"condition": True, "name": "from file"}])
        checker = _make_checker(loader=loader)
        checker.check(tmp_path / "requirements.yaml")
        loader.assert_called_once_with(tmp_path / "requirements.yaml")
        assert checker.get_result().requirements[0].name == "from file"

    def test_string_path_is_resolved_through_loader(self):
        loader = MagicMock(return_value=[])
        _make_checker(loader=loader).check("requirements.yaml")
        loader.assert_called_once_with(Path("requirements.yaml"))

    def test_real_yaml_file(self, tmp_path):
        path = tmp_path / "requirements.yaml"
        path.write_text("- name: Cache\n  condition: false\n  memo: Redis is recommended\n", encoding="utf-8")
        result = _make_checker().check(path).get_result()
        assert result.requirements[0].memo == "Redis is recommended"
        assert result.summary.warnings == 1

    @pytest.mark.parametrize("value", [None, 42, True])
    def test_non_sequence_is_usage_error(self, value):
        loader = MagicMock(return_value=value)
        with pytest.raises(RequirementsUsageError, match="Requirements must be a list"):
            _make_checker(loader=loader).check("requirements.yaml")

    def test_missing_condition_is_usage_error(self):
        with pytest.raises(RequirementsUsageError, match="has no condition"):
            _make_checker().check([{"name": "broken"}])


# ---------------------------------------------------------------------------
# Probe wrappers
# ---------------------------------------------------------------------------


class TestProbeMessages:
    def test_memory_message_stored(self):
        checker = _make_checker(memory_limit="16M")
        assert checker.check_memory() is False
        assert "32M" in checker.memory_message

    def test_ini_set_disabled(self):
        checker = _make_checker(locked={"memory_limit"})
        assert checker.check_ini_set() is False
        assert "disabled" in checker.ini_set_message

    def test_ini_set_restores_value(self):
        checker = _make_checker(memory_limit="256M")
        assert checker.check_ini_set() is True
        assert checker.runtime_config.get("memory_limit") == "256M"

    def test_transcoding_message_stored(self):
        checker = _make_checker()
        assert checker.check_transcoding() is True
        assert checker.transcoding_message

    def test_webroot_message_stored(self, tmp_path):
        public = tmp_path / "public"
        (public / "storage").mkdir(parents=True)
        checker = _make_checker()
        context = WebrootContext(script_file=public / "index.php", script_url="/index.php")
        assert checker.check_webroot({"storage": public / "storage"}, context) is False
        assert "“storage” folder" in checker.webroot_message

    def test_ini_on_off_use_runtime_config(self):
        checker = RequirementsChecker(
            settings=Settings(),
            runtime_config=MappingRuntimeConfig({"display_errors": "On"}),
        )
        assert checker.check_ini_on("display_errors") is True
        assert checker.check_ini_off("display_errors") is False


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class TestDatabase:
    def test_no_credentials(self):
        checker = _make_checker()
        assert checker.check_database_creds() is False
        assert checker.database is None
        assert checker.check_database_connection() is False
        assert checker.check_database_server_version() is False

    def test_credentials_from_file(self, tmp_path):
        path = tmp_path / "db.yaml"
        path.write_text(
            "driver: pgsql\nserver: localhost\ndatabase: acme\nuser: acme\npassword: pw\nport: 5432\n",
            encoding="utf-8",
        )
        checker = RequirementsChecker(settings=Settings(db_config_path=path))
        assert checker.check_database_creds() is True
        assert checker.db_credentials.driver == "pgsql"
        assert checker.db_credentials.port == 5432

    def test_credentials_from_provider(self):
        provider = MagicMock(return_value=_mysql_credentials())
        checker = RequirementsChecker(settings=Settings(), credential_provider=provider)
        assert checker.check_database_creds() is True
        provider.assert_called_once_with()

    def test_connection_is_shared(self):
        factory = _engine_factory()
        checker = _make_checker(credentials=_mysql_credentials(), engine_factory=factory)
        assert checker.check_database_connection() is True
        assert checker.check_database_server_version() is True
        assert checker.is_innodb_supported() is True
        factory.assert_called_once()
        factory.return_value.connect.assert_called_once_with()

    def test_minimum_versions_from_settings(self):
        factory = _engine_factory(version=(5, 7, 0))
        checker = RequirementsChecker(
            settings=Settings(required_mysql_version="8.0"),
            credentials=_mysql_credentials(),
            engine_factory=factory,
        )
        assert checker.check_database_server_version() is False

    def test_unsupported_driver_is_fatal(self):
        checker = _make_checker(credentials=_mysql_credentials("oracle"), engine_factory=_engine_factory())
        with pytest.raises(UnsupportedDriverError, match="oracle"):
            checker.check_database_server_version()

    def test_close_releases_connection(self):
        factory = _engine_factory()
        checker = _make_checker(credentials=_mysql_credentials(), engine_factory=factory)
        checker.check_database_connection()
        checker.close()
        factory.return_value.connect.return_value.close.assert_called_once_with()
        factory.return_value.dispose.assert_called_once_with()


# ---------------------------------------------------------------------------
# Platform requirements
# ---------------------------------------------------------------------------


class TestCheckPlatform:
    def test_core_requirements_without_database(self):
        checker = _make_checker().check_platform()
        names = _by_name(checker)
        assert list(names)[0] == "Python version"
        assert names["Python version"].condition is True
        assert names["Run-time configuration changes"].condition is True
        assert names["Memory limit"].condition is True
        assert names["Transcoding"].condition is True
        assert names["pydantic package"].condition is True
        assert names["SQLAlchemy package"].condition is True
        assert "Database connection" not in names
        assert "Sensitive folders should not be publicly accessible" not in names

    def test_total_matches_records(self):
        result = _make_checker().check_platform().get_result()
        assert result.summary.total == len(result.requirements)

    def test_insufficient_memory_is_error(self):
        names = _by_name(_make_checker(memory_limit="16M").check_platform())
        assert names["Memory limit"].error is True

    def test_low_memory_is_warning(self):
        names = _by_name(_make_checker(memory_limit="100M").check_platform())
        assert names["Memory limit"].error is False
        assert names["Memory limit"].warning is True

    def test_locked_config_is_error(self):
        names = _by_name(_make_checker(locked={"memory_limit"}).check_platform())
        assert names["Run-time configuration changes"].error is True

    def test_database_requirements_for_mysql(self):
        checker = _make_checker(credentials=_mysql_credentials(), engine_factory=_engine_factory())
        names = _by_name(checker.check_platform())
        assert names["Database connection"].condition is True
        assert names["Database server version"].condition is True
        assert names["MySQL InnoDB support"].condition is True

    def test_innodb_disabled(self):
        factory = _engine_factory(engines=[{"Engine": "InnoDB", "Support": "NO"}])
        checker = _make_checker(credentials=_mysql_credentials(), engine_factory=factory)
        names = _by_name(checker.check_platform())
        assert names["MySQL InnoDB support"].error is True

    def test_no_innodb_check_for_postgres(self):
        factory = _engine_factory(version=(15, 4))
        checker = _make_checker(credentials=_mysql_credentials("pgsql"), engine_factory=factory)
        names = _by_name(checker.check_platform())
        assert names["Database server version"].condition is True
        assert "MySQL InnoDB support" not in names

    def test_connection_failure_is_reported(self):
        from sqlalchemy.exc import OperationalError

        factory = MagicMock(side_effect=OperationalError("connect", {}, Exception("refused")))
        checker = _make_checker(credentials=_mysql_credentials(), engine_factory=factory)
        names = _by_name(checker.check_platform())
        assert names["Database connection"].error is True
        assert "Can't connect to the database" in names["Database connection"].memo
        assert "Database server version" not in names

    def test_webroot_included_with_context(self, tmp_path):
        public = tmp_path / "public"
        (public / "templates").mkdir(parents=True)
        (tmp_path / "config").mkdir()
        context = WebrootContext(script_file=public / "index.php", script_url="/index.php")
        checker = _make_checker().check_platform(
            webroot_folders={"templates": public / "templates", "config": tmp_path / "config"},
            webroot_context=context,
        )
        req = _by_name(checker)["Sensitive folders should not be publicly accessible"]
        assert req.warning is True
        assert "“templates”" in req.memo
        assert "“config”" not in req.memo

    def test_platform_then_application_batch(self):
        checker = _make_checker().check_platform()
        core_total = checker.get_result().summary.total
        checker.check([{"name": "Application cache", "condition": True}])
        result = checker.get_result()
        assert result.summary.total == core_total + 1
        assert result.requirements[-1].name == "Application cache"


class TestRenderContext:
    def test_context_keys(self):
        context = _make_checker().render_context()
        assert set(context) == {"server_info", "current_date", "python_version", "platform"}
        assert context["server_info"]

    def test_server_software_preferred(self, monkeypatch):
        monkeypatch.setenv("SERVER_SOFTWARE", "nginx/1.25")
        assert RequirementsChecker.server_info() == "nginx/1.25"


class TestPythonMinimum:
    def test_default_minimum_passes_on_supported_interpreter(self):
        names = _by_name(_make_checker().check_platform())
        assert "Python 3.11 or higher" in names["Python version"].memo
        assert names["Python version"].condition is True

    def test_unreachable_minimum_is_error(self):
        checker = RequirementsChecker(
            settings=Settings(min_python_version="99.0"),
            runtime_config=MappingRuntimeConfig({"memory_limit": "512M"}),
        )
        names = _by_name(checker.check_platform())
        assert names["Python version"].error is True
