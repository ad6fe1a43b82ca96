"""Log directory resolution.

The directory comes from ``ELASTIC_APM_PROFILER_LOG_DIR`` when set, else a
platform default. Fallbacks are expressed as ordered strategies: each one
returns a value or ``None`` to hand over to the next.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TypeVar

from loguru import logger

from apm_profiler.env import (
    ELASTIC_APM_PROFILER_LOG_DIR_ENV_VAR,
    is_windows,
    pointer_width,
)

T = TypeVar("T")
Strategy = Callable[[], Optional[T]]

UNIX_DEFAULT_LOG_DIR = Path("/var/log/elastic/apm-agent-dotnet")


@dataclass(frozen=True)
class LogDirectoryResolution:
    """The log directory to use and whether file logging can use it."""

    path: Path
    is_valid: bool


def first_resolved(strategies: Iterable[Strategy], fallback: T) -> T:
    """Return the first non-``None`` strategy result, else *fallback*."""
    for strategy in strategies:
        value = strategy()
        if value is not None:
            return value
    return fallback


def env_strategy(key: str) -> Strategy:
    """Strategy reading the environment variable *key*."""
    return lambda: os.environ.get(key)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def profiler_dir_strategies() -> List[Strategy]:
    """CoreCLR variables first, then the .NET Framework (``COR_``) ones."""
    width = pointer_width()
    return [
        env_strategy(f"CORECLR_PROFILER_PATH_{width}"),
        env_strategy("CORECLR_PROFILER_PATH"),
        env_strategy(f"COR_PROFILER_PATH_{width}"),
        env_strategy("COR_PROFILER_PATH"),
    ]


def get_profiler_dir() -> str:
    return first_resolved(profiler_dir_strategies(), "")


def _programdata_log_dir() -> Optional[Path]:
    programdata = os.environ.get("PROGRAMDATA")
    if programdata is None:
        return None
    return Path(programdata) / "elastic" / "apm-agent-dotnet" / "logs"


def _profiler_log_dir() -> Path:
    return Path(get_profiler_dir()) / "logs"


def default_log_dir(system: Optional[str] = None) -> Path:
    """Return the platform default log directory.

    Args:
        system: Platform name as reported by ``platform.system()``.
            Defaults to the running platform.

    Returns:
        ``%PROGRAMDATA%\\elastic\\apm-agent-dotnet\\logs`` on Windows, or
        ``<profiler path>\\logs`` when ``PROGRAMDATA`` is unset.
        ``/var/log/elastic/apm-agent-dotnet`` everywhere else.
    """
    if not is_windows(system):
        return UNIX_DEFAULT_LOG_DIR
    return first_resolved([_programdata_log_dir, _profiler_log_dir], Path("logs"))


def get_log_dir(system: Optional[str] = None) -> Path:
    override = os.environ.get(ELASTIC_APM_PROFILER_LOG_DIR_ENV_VAR)
    if override:
        return Path(override)
    return default_log_dir(system)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _create_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.info(f"Could not create log directory {path}: {e}")
        return False
    return True


def effective_log_dir(system: Optional[str] = None) -> LogDirectoryResolution:
    """Resolve and validate the directory log files are written to.

    An existing path that is not a directory is replaced by the platform
    default. A missing directory is created; if that fails the default is
    tried once. The result is invalid when no usable directory was found,
    in which case file logging should be skipped.

    Args:
        system: Platform override, see ``default_log_dir``.

    Returns:
        The resolved ``LogDirectoryResolution``.
    """
    default = default_log_dir(system)
    log_dir = get_log_dir(system)

    if os.path.exists(log_dir) and not os.path.isdir(log_dir):
        logger.info(f"Log directory {log_dir} is not a directory, using {default}")
        log_dir = default

    if os.path.isdir(log_dir) or _create_dir(log_dir):
        return LogDirectoryResolution(path=log_dir, is_valid=True)

    if log_dir != default:
        logger.info(f"Falling back to default log directory {default}")
        return LogDirectoryResolution(path=default, is_valid=_create_dir(default))

    return LogDirectoryResolution(path=log_dir, is_valid=False)
