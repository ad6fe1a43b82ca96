"""Typed reads of the profiler's environment variables.

Every reader falls back to a default instead of raising: a malformed or
missing variable is logged at INFO and the default is used. Two flags,
``LOG_IL`` and ``CALLTARGET_ENABLED``, are resolved once per process and
cached for the rest of its lifetime.
"""

import os
import platform
import sys
import threading
from typing import FrozenSet, Optional

from loguru import logger

from apm_profiler.errors import E_FAIL, ProfilerError
from apm_profiler.levels import LogLevel, LogTarget

ELASTIC_APM_PROFILER_INTEGRATIONS = "ELASTIC_APM_PROFILER_INTEGRATIONS"
ELASTIC_APM_PROFILER_LOG_TARGETS_ENV_VAR = "ELASTIC_APM_PROFILER_LOG_TARGETS"
ELASTIC_APM_PROFILER_LOG_ENV_VAR = "ELASTIC_APM_PROFILER_LOG"
ELASTIC_APM_PROFILER_LOG_DIR_ENV_VAR = "ELASTIC_APM_PROFILER_LOG_DIR"
ELASTIC_APM_PROFILER_LOG_IL_ENV_VAR = "ELASTIC_APM_PROFILER_LOG_IL"
ELASTIC_APM_PROFILER_CALLTARGET_ENABLED_ENV_VAR = (
    "ELASTIC_APM_PROFILER_CALLTARGET_ENABLED"
)
ELASTIC_APM_PROFILER_ENABLE_INLINING = "ELASTIC_APM_PROFILER_ENABLE_INLINING"
ELASTIC_APM_PROFILER_DISABLE_OPTIMIZATIONS = (
    "ELASTIC_APM_PROFILER_DISABLE_OPTIMIZATIONS"
)

ENV_VAR_PREFIXES = ("ELASTIC_", "CORECLR_", "COR_")

WINDOWS_PROFILER_FILE = "elastic_apm_profiler.dll"

_TRUE_VALUES = {"true", "1"}
_FALSE_VALUES = {"false", "0"}


def pointer_width() -> str:
    """Return ``"64"`` or ``"32"`` for the running interpreter."""
    return "64" if sys.maxsize > 2**32 else "32"


def is_windows(system: Optional[str] = None) -> bool:
    """Whether *system* (default: the current platform) is Windows."""
    return (system or platform.system()).lower() == "windows"


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


def read_bool(key: str, default: bool) -> bool:
    """Read a boolean environment variable.

    ``true``/``1`` and ``false``/``0`` are accepted, case-insensitively.

    Args:
        key: Environment variable name.
        default: Value used when the variable is unset or not a boolean.

    Returns:
        The parsed value, or *default*.
    """
    raw = os.environ.get(key)
    if raw is None:
        logger.info(
            f"Problem reading {key}: environment variable not found. "
            f"Setting to {default}"
        )
        return default

    text = raw.lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False

    logger.info(f"Unknown value for {key}: {raw}. Setting to {default}")
    return default


def read_log_level(key: str, default: LogLevel) -> LogLevel:
    """Read a log level name from *key*, falling back to *default*."""
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return LogLevel.parse(raw)
    except ValueError:
        logger.info(f"Unknown value for {key}: {raw}. Setting to {default.name}")
        return default


def read_log_level_from_env_var(default: LogLevel) -> LogLevel:
    return read_log_level(ELASTIC_APM_PROFILER_LOG_ENV_VAR, default)


def read_log_targets_from_env_var() -> FrozenSet[LogTarget]:
    """Read the ``;``-separated log targets.

    Unknown entries are dropped. An empty result becomes ``{FILE}``.
    """
    raw = os.environ.get(ELASTIC_APM_PROFILER_LOG_TARGETS_ENV_VAR, "")
    targets = set()
    for token in raw.split(";"):
        try:
            targets.add(LogTarget(token.lower()))
        except ValueError:
            continue

    if not targets:
        targets.add(LogTarget.FILE)
    return frozenset(targets)


def enable_inlining(default: bool) -> bool:
    return read_bool(ELASTIC_APM_PROFILER_ENABLE_INLINING, default)


def disable_optimizations() -> bool:
    return read_bool(ELASTIC_APM_PROFILER_DISABLE_OPTIMIZATIONS, False)


def get_integrations_path() -> Optional[str]:
    """Return the integrations manifest path, or ``None`` when unset."""
    return os.environ.get(ELASTIC_APM_PROFILER_INTEGRATIONS)


# ---------------------------------------------------------------------------
# Process-wide cached flags
# ---------------------------------------------------------------------------


class CachedFlag:
    """A boolean environment flag resolved at most once.

    The first read resolves the variable under a lock; every later read
    returns the same value, even if the environment has changed since.
    """

    def __init__(self, key: str, default: bool):
        self.key = key
        self.default = default
        self._value: Optional[bool] = None
        self._lock = threading.Lock()

    @property
    def value(self) -> bool:
        value = self._value
        if value is None:
            with self._lock:
                if self._value is None:
                    self._value = read_bool(self.key, self.default)
                value = self._value
        return value

    @property
    def resolved(self) -> bool:
        return self._value is not None

    def __bool__(self) -> bool:
        return self.value

    def __repr__(self) -> str:
        state = self._value if self.resolved else "<unresolved>"
        return f"CachedFlag({self.key!r}, default={self.default}, value={state})"


LOG_IL = CachedFlag(ELASTIC_APM_PROFILER_LOG_IL_ENV_VAR, False)
CALLTARGET_ENABLED = CachedFlag(ELASTIC_APM_PROFILER_CALLTARGET_ENABLED_ENV_VAR, True)


def log_il() -> bool:
    return LOG_IL.value


def calltarget_enabled() -> bool:
    return CALLTARGET_ENABLED.value


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


def get_env_vars() -> str:
    """List the environment variables of interest for startup diagnostics.

    Returns:
        One ``  KEY="VALUE"`` line per variable whose name starts with
        ``ELASTIC_``, ``CORECLR_`` or ``COR_``, sorted by name.
    """
    return "\n".join(
        f'  {key}="{value}"'
        for key, value in sorted(os.environ.items())
        if key.startswith(ENV_VAR_PREFIXES)
    )


def get_native_profiler_file(system: Optional[str] = None) -> str:
    """Return the path of the native profiler library.

    On Windows this is the bare file name. Elsewhere it comes from the
    pointer-width specific ``CORECLR_PROFILER_PATH_*`` variable, then
    ``CORECLR_PROFILER_PATH``.

    Raises:
        ProfilerError: If no profiler path variable is set.
    """
    if is_windows(system):
        return WINDOWS_PROFILER_FILE

    for key in (f"CORECLR_PROFILER_PATH_{pointer_width()}", "CORECLR_PROFILER_PATH"):
        value = os.environ.get(key)
        if value is not None:
            return value

    logger.warning(
        "problem getting env var CORECLR_PROFILER_PATH: environment variable not found"
    )
    raise ProfilerError("CORECLR_PROFILER_PATH is not set", code=E_FAIL)
