"""Snapshot of every setting the bootstrap resolves from the environment."""

from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel

from apm_profiler import env
from apm_profiler.levels import LogLevel, LogTarget
from apm_profiler.log_dir import effective_log_dir
from apm_profiler.logging_setup import DEFAULT_LOG_LEVEL


class ProfilerSettings(BaseModel):
    """Resolved profiler configuration, for startup diagnostics."""

    log_targets: List[LogTarget]
    log_level: LogLevel
    log_dir: Path
    log_dir_valid: bool
    integrations_path: Optional[str] = None
    log_il: bool
    calltarget_enabled: bool
    enable_inlining: bool
    disable_optimizations: bool


def load_env(env_file: Union[str, Path]) -> bool:
    """Load variables from a dotenv file without overriding set ones.

    Args:
        env_file: Path to the ``.env`` file.

    Returns:
        True if the file existed and was loaded.
    """
    path = Path(env_file).expanduser()
    if not path.is_file():
        logger.warning(f"Env file not found: {path}")
        return False
    load_dotenv(dotenv_path=path, override=False)
    logger.debug(f"Loaded env from: {path}")
    return True


def load_settings(
    inlining_default: bool = False, system: Optional[str] = None
) -> ProfilerSettings:
    """Resolve every setting from the current environment.

    Resolving the log directory creates it if missing, exactly as logging
    initialization would.

    Args:
        inlining_default: Default for ``ELASTIC_APM_PROFILER_ENABLE_INLINING``.
        system: Platform override for the default log directory.

    Returns:
        A ``ProfilerSettings`` snapshot.
    """
    targets = env.read_log_targets_from_env_var()
    resolution = effective_log_dir(system)
    return ProfilerSettings(
        log_targets=sorted(targets, key=lambda t: t.value),
        log_level=env.read_log_level_from_env_var(DEFAULT_LOG_LEVEL),
        log_dir=resolution.path,
        log_dir_valid=resolution.is_valid,
        integrations_path=env.get_integrations_path(),
        log_il=env.log_il(),
        calltarget_enabled=env.calltarget_enabled(),
        enable_inlining=env.enable_inlining(inlining_default),
        disable_optimizations=env.disable_optimizations(),
    )
