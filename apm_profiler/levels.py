"""Log severity and log target value types."""

from enum import Enum, IntEnum
from typing import Optional


class LogLevel(IntEnum):
    """Ordered log severity, ``OFF`` being the least verbose."""

    OFF = 0
    ERROR = 1
    WARN = 2
    INFO = 3
    DEBUG = 4
    TRACE = 5

    @classmethod
    def parse(cls, value: str) -> "LogLevel":
        """Parse a level name, case-insensitively.

        Args:
            value: One of ``off``, ``error``, ``warn``, ``info``, ``debug``
                or ``trace``.

        Returns:
            The matching ``LogLevel``.

        Raises:
            ValueError: If *value* is not a level name.
        """
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {value!r}") from None

    @property
    def loguru_name(self) -> Optional[str]:
        """Name of the matching loguru level, ``None`` for ``OFF``."""
        return _LOGURU_NAMES[self]


_LOGURU_NAMES = {
    LogLevel.OFF: None,
    LogLevel.ERROR: "ERROR",
    LogLevel.WARN: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.TRACE: "TRACE",
}

# loguru level name -> the short name written to log lines
SHORT_LEVEL_NAMES = {
    "CRITICAL": "ERROR",
    "ERROR": "ERROR",
    "WARNING": "WARN",
    "SUCCESS": "INFO",
    "INFO": "INFO",
    "DEBUG": "DEBUG",
    "TRACE": "TRACE",
}


class LogTarget(str, Enum):
    """Where log records are written."""

    FILE = "file"
    STDOUT = "stdout"
