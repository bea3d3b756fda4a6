"""Preflight configuration loaded from environment variables."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class PreflightEnv(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with PREFLIGHT_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="PREFLIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    env: PreflightEnv = PreflightEnv.DEV
    debug: bool = False

    # Logging
    structured_logging: bool = False

    # Declaration and credential sources
    requirements_file: Path | None = None
    db_config_path: Path | None = None

    # Naming used in requirement memos and webroot messages
    app_name: str = "application"

    # Minimum versions
    min_python_version: str = "3.11"
    required_mysql_version: str = "5.5.0"
    required_pgsql_version: str = "9.5"

    # Runtime configuration store
    runtime_env_prefix: str = "PREFLIGHT_INI_"

    @field_validator("min_python_version", "required_mysql_version", "required_pgsql_version")
    @classmethod
    def strip_version(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("version must not be empty")
        return v


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings for environment: %s", settings.env.value)

    return settings
