"""Host environment probes.

Each probe inspects one aspect of the host and yields a boolean condition,
usually with an explanation, ready to be folded into a requirement
declaration.
"""

from preflight_core.requirements.probes.database import (
    DatabaseProbe,
    UnsupportedDriverError,
)
from preflight_core.requirements.probes.encoding import check_transcoding, default_transcoder
from preflight_core.requirements.probes.runtime_config import (
    ConfigMutationDisabled,
    EnvironRuntimeConfig,
    InterpreterFlagsConfig,
    MappingRuntimeConfig,
    MemoryTier,
    RuntimeConfig,
    check_ini_off,
    check_ini_on,
    check_ini_set,
    check_memory,
    classify_memory,
    scoped_setting,
)
from preflight_core.requirements.probes.sizes import get_byte_size
from preflight_core.requirements.probes.versions import (
    check_extension_loaded,
    check_extension_version,
    check_python_version,
    compare_versions,
)
from preflight_core.requirements.probes.webroot import check_webroot, describe_folders

__all__ = [
    "ConfigMutationDisabled",
    "DatabaseProbe",
    "EnvironRuntimeConfig",
    "InterpreterFlagsConfig",
    "MappingRuntimeConfig",
    "MemoryTier",
    "RuntimeConfig",
    "UnsupportedDriverError",
    "check_extension_loaded",
    "check_extension_version",
    "check_ini_off",
    "check_ini_on",
    "check_ini_set",
    "check_memory",
    "check_python_version",
    "check_transcoding",
    "check_webroot",
    "classify_memory",
    "compare_versions",
    "default_transcoder",
    "describe_folders",
    "get_byte_size",
    "scoped_setting",
]
