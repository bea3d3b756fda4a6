"""Data models for the preflight requirements engine.

Defines the normalized requirement record, the running summary counters,
the cumulative aggregate result, the database credential record, and the
small value types returned by probes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator


@dataclass(frozen=True)
class ProbeOutcome:
    """Condition produced by a probe, plus the explanation shown next to it."""

    condition: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.condition


class NormalizedRequirement(BaseModel):
    """A declaration with defaults applied and its classification attached.

    Extra keys present on the source declaration are carried through
    unchanged.  Instances are frozen once built.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(..., description="Human-readable requirement name.")
    condition: bool = Field(..., description="Whether the host satisfies the requirement.")
    mandatory: bool = Field(default=False, description="Whether an unmet condition is an error.")
    memo: str = Field(default="", description="Explanation shown alongside the requirement.")
    error: bool = Field(default=False, description="Unmet mandatory requirement.")
    warning: bool = Field(default=False, description="Unmet requirement of either kind.")

    @field_validator("condition", "mandatory", mode="before")
    @classmethod
    def coerce_truthiness(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("name", "memo", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @model_validator(mode="after")
    def check_classification(self) -> NormalizedRequirement:
        if self.error and not (self.warning and self.mandatory and not self.condition):
            raise ValueError(f"Requirement {self.name!r}: error requires an unmet mandatory condition")
        if self.warning and self.condition:
            raise ValueError(f"Requirement {self.name!r}: warning requires an unmet condition")
        if self.warning and not self.error and self.mandatory:
            raise ValueError(f"Requirement {self.name!r}: unmet mandatory condition must be an error")
        if not self.warning and not self.condition:
            raise ValueError(f"Requirement {self.name!r}: unmet condition must be flagged")
        return self


class RequirementSummary(BaseModel):
    """Running totals across every checked requirement."""

    total: int = Field(default=0, description="Number of requirements checked.")
    errors: int = Field(default=0, description="Unmet mandatory requirements.")
    warnings: int = Field(default=0, description="Unmet optional requirements.")


class AggregateResult(BaseModel):
    """Cumulative report across one or more check batches.

    Requirements appear in the order they were checked.  The result only
    ever grows.
    """

    summary: RequirementSummary = Field(default_factory=RequirementSummary)
    requirements: list[NormalizedRequirement] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        """Return True if no mandatory requirement is unmet."""
        return self.summary.errors == 0

    @property
    def has_warnings(self) -> bool:
        return self.summary.warnings > 0

    @property
    def errors(self) -> list[NormalizedRequirement]:
        return [r for r in self.requirements if r.error]

    @property
    def warnings(self) -> list[NormalizedRequirement]:
        return [r for r in self.requirements if r.warning and not r.error]


class DatabaseCredentials(BaseModel):
    """Connection details supplied by a config file or a running application."""

    driver: str = Field(..., description="Driver family, e.g. 'mysql' or 'pgsql'.")
    server: str = Field(..., description="Database host name.")
    database: str = Field(..., description="Database (schema) name.")
    user: str = Field(..., description="Login user.")
    password: SecretStr = Field(..., description="Login password.")
    port: int | None = Field(default=None, description="Optional TCP port.")

    @field_validator("driver")
    @classmethod
    def lower_driver(cls, v: str) -> str:
        return v.strip().lower()


class WebrootContext(BaseModel):
    """Location of the running entry script, as seen by the web server."""

    script_file: Path = Field(..., description="Absolute filesystem path of the entry script.")
    script_url: str = Field(..., description="Public URL path of the entry script, e.g. '/index.php'.")
