"""Process-wide logging bootstrap.

``initialize_logging`` reads the log targets and level from the environment,
describes one sink per usable target and installs them all at once with
``logger.configure``. It never raises: a target whose sink cannot be built
is dropped and the remaining ones are installed.
"""

import os
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from loguru import logger

from apm_profiler.env import read_log_level_from_env_var, read_log_targets_from_env_var
from apm_profiler.levels import SHORT_LEVEL_NAMES, LogLevel, LogTarget
from apm_profiler.log_dir import effective_log_dir
from apm_profiler.rolling import FixedWindowRoller, RollingPolicy

DEFAULT_LOG_LEVEL = LogLevel.WARN

LOG_FORMAT = (
    "[{time:YYYY-MM-DDTHH:mm:ss.SSSSSSZ}] [{extra[short_level]: <5}] {message}\n"
    "{exception}"
)

LOG_FILE_PREFIX = "elastic_apm_profiler"


def _format_record(record: Dict[str, Any]) -> str:
    level_name = record["level"].name
    record["extra"]["short_level"] = SHORT_LEVEL_NAMES.get(level_name, level_name)
    return LOG_FORMAT


# ---------------------------------------------------------------------------
# Sink descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SinkDescriptor:
    """Everything needed to add one loguru handler for a target."""

    target: LogTarget
    sink: Any
    options: Dict[str, Any] = field(default_factory=dict)

    def handler(self, level: LogLevel) -> Dict[str, Any]:
        return {
            "sink": self.sink,
            "level": level.loguru_name,
            "format": _format_record,
            "colorize": False,
            **self.options,
        }


def stdout_sink() -> SinkDescriptor:
    return SinkDescriptor(target=LogTarget.STDOUT, sink=sys.stdout)


def log_file_paths(log_dir: Path, process_name: str, pid: int) -> Tuple[Path, str]:
    """Return the active log file and the rolling pattern for its backups."""
    stem = f"{LOG_FILE_PREFIX}_{process_name}_{pid}"
    return log_dir / f"{stem}.log", str(log_dir / f"{stem}_{{}}.log")


def file_sink(
    log_dir: Path,
    process_name: str,
    pid: int,
    policy: RollingPolicy = RollingPolicy(),
) -> SinkDescriptor:
    """Describe a size-rotated log file in *log_dir*.

    Args:
        log_dir: A validated, existing directory.
        process_name: Name of the profiled process, used in the file name.
        pid: Process id, used in the file name.
        policy: Rotation trigger size and number of backups kept.

    Returns:
        A ``SinkDescriptor`` for the ``FILE`` target.
    """
    log_file, pattern = log_file_paths(log_dir, process_name, pid)
    return SinkDescriptor(
        target=LogTarget.FILE,
        sink=str(log_file),
        options={
            "rotation": policy.max_size_bytes,
            "compression": FixedWindowRoller.from_policy(pattern, policy),
            "mode": "a",
            "encoding": "utf-8",
        },
    )


def _sink_is_usable(descriptor: SinkDescriptor) -> bool:
    if descriptor.target is not LogTarget.FILE:
        return True
    try:
        with open(descriptor.sink, "a", encoding="utf-8"):
            pass
    except OSError as e:
        logger.warning(
            f"Cannot open log file {descriptor.sink}: {e}. File logging is disabled."
        )
        return False
    return True


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingConfig:
    """An immutable set of validated sinks and the level they log at."""

    level: LogLevel
    sinks: Tuple[SinkDescriptor, ...] = ()

    @property
    def targets(self) -> FrozenSet[LogTarget]:
        return frozenset(s.target for s in self.sinks)

    @property
    def log_file(self) -> Optional[Path]:
        for s in self.sinks:
            if s.target is LogTarget.FILE:
                return Path(s.sink)
        return None

    def handlers(self) -> List[Dict[str, Any]]:
        if self.level is LogLevel.OFF:
            return []
        return [s.handler(self.level) for s in self.sinks]

    def without(self, target: LogTarget) -> "LoggingConfig":
        kept = tuple(s for s in self.sinks if s.target is not target)
        return replace(self, sinks=kept)


@dataclass
class LoggerHandle:
    """The installed logging configuration, owned by the host after startup."""

    level: LogLevel
    active_targets: FrozenSet[LogTarget]
    log_file: Optional[Path] = None
    handler_ids: Tuple[int, ...] = ()

    @property
    def is_logging(self) -> bool:
        return self.level is not LogLevel.OFF and bool(self.active_targets)

    def flush(self) -> None:
        logger.complete()

    def shutdown(self) -> None:
        """Flush and remove the handlers this bootstrap installed."""
        self.flush()
        for handler_id in self.handler_ids:
            try:
                logger.remove(handler_id)
            except ValueError:
                # already removed by a later reconfiguration
                continue
        self.handler_ids = ()
        self.active_targets = frozenset()


def build_logging_config(
    process_name: str,
    targets: FrozenSet[LogTarget],
    level: LogLevel,
    pid: Optional[int] = None,
    system: Optional[str] = None,
    policy: RollingPolicy = RollingPolicy(),
) -> LoggingConfig:
    """Describe and validate a sink for each requested target.

    An invalid log directory or an unopenable log file drops the ``FILE``
    target; stdout is unaffected.
    """
    if level is LogLevel.OFF:
        return LoggingConfig(level=level)

    candidates: List[SinkDescriptor] = []
    if LogTarget.STDOUT in targets:
        candidates.append(stdout_sink())

    if LogTarget.FILE in targets:
        resolution = effective_log_dir(system)
        if resolution.is_valid:
            candidates.append(
                file_sink(
                    resolution.path,
                    process_name,
                    os.getpid() if pid is None else pid,
                    policy,
                )
            )

    return LoggingConfig(
        level=level,
        sinks=tuple(s for s in candidates if _sink_is_usable(s)),
    )


def install(config: LoggingConfig) -> LoggerHandle:
    """Replace every loguru handler with the ones described by *config*."""
    try:
        handler_ids = logger.configure(handlers=config.handlers())
    except OSError as e:
        config = config.without(LogTarget.FILE)
        handler_ids = logger.configure(handlers=config.handlers())
        logger.warning(f"Problem creating file logger: {e}. File logging is disabled.")

    return LoggerHandle(
        level=config.level,
        active_targets=config.targets if config.handlers() else frozenset(),
        log_file=config.log_file if config.handlers() else None,
        handler_ids=tuple(handler_ids),
    )


def initialize_logging(
    process_name: str,
    pid: Optional[int] = None,
    system: Optional[str] = None,
) -> LoggerHandle:
    """Install the process-wide logger from the profiler's environment.

    Call once, during single-threaded startup.

    Args:
        process_name: Name of the profiled process, used in the log file name.
        pid: Process id for the log file name, defaults to the current one.
        system: Platform override for the default log directory.

    Returns:
        A ``LoggerHandle``. Its ``active_targets`` may be empty, in which
        case the process runs unlogged.
    """
    targets = read_log_targets_from_env_var()
    level = read_log_level_from_env_var(DEFAULT_LOG_LEVEL)
    config = build_logging_config(process_name, targets, level, pid=pid, system=system)
    return install(config)
