"""Preflight requirements engine -- host environment checks.

Evaluates named conditions about the host (installed packages, interpreter
configuration, memory, web root exposure, database reachability) and folds
them into a cumulative pass / warning / error report.

Quick start::

    from preflight_core.requirements import RequirementsChecker

    checker = RequirementsChecker()
    checker.check_platform().check("config/requirements.yaml")
    result = checker.get_result()
    print(result.summary.total, result.summary.errors, result.summary.warnings)
"""

from preflight_core.requirements.engine import RequirementsChecker
from preflight_core.requirements.loader import (
    DeclarationLoadError,
    load_credentials,
    load_declarations,
)
from preflight_core.requirements.models import (
    AggregateResult,
    DatabaseCredentials,
    NormalizedRequirement,
    ProbeOutcome,
    RequirementSummary,
    WebrootContext,
)
from preflight_core.requirements.normalizer import RequirementsUsageError, normalize_requirement
from preflight_core.requirements.probes.database import UnsupportedDriverError

__all__ = [
    "AggregateResult",
    "DatabaseCredentials",
    "DeclarationLoadError",
    "NormalizedRequirement",
    "ProbeOutcome",
    "RequirementSummary",
    "RequirementsChecker",
    "RequirementsUsageError",
    "UnsupportedDriverError",
    "WebrootContext",
    "load_credentials",
    "load_declarations",
    "normalize_requirement",
]
