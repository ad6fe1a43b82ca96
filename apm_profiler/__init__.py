"""APM profiler bootstrap: environment configuration, logging and integrations."""

from apm_profiler.env import (
    CALLTARGET_ENABLED,
    LOG_IL,
    calltarget_enabled,
    disable_optimizations,
    enable_inlining,
    get_env_vars,
    log_il,
    read_bool,
    read_log_level,
)
from apm_profiler.errors import E_FAIL, IntegrationsLoadError, ProfilerError
from apm_profiler.integrations import Integration, load_integrations
from apm_profiler.levels import LogLevel, LogTarget
from apm_profiler.log_dir import default_log_dir, effective_log_dir
from apm_profiler.logging_setup import LoggerHandle, initialize_logging

__version__ = "1.0.0"

__all__ = [
    "CALLTARGET_ENABLED",
    "E_FAIL",
    "Integration",
    "IntegrationsLoadError",
    "LOG_IL",
    "LogLevel",
    "LogTarget",
    "LoggerHandle",
    "ProfilerError",
    "calltarget_enabled",
    "default_log_dir",
    "disable_optimizations",
    "effective_log_dir",
    "enable_inlining",
    "get_env_vars",
    "initialize_logging",
    "load_integrations",
    "log_il",
    "read_bool",
    "read_log_level",
]
