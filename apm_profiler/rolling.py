"""Size-triggered rotation into a fixed window of numbered backups.

loguru triggers the rotation and renames the full file out of the way; the
roller then moves that file to index 0 of the window, shifting older
backups up by one and dropping the oldest.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

INDEX_PLACEHOLDER = "{}"


@dataclass(frozen=True)
class RollingPolicy:
    """Rotate once the file would exceed ``max_size_bytes``."""

    max_size_bytes: int = 5 * 1024 * 1024
    window_size: int = 10


class FixedWindowRoller:
    """Keep up to ``count`` backups named by substituting an index into a pattern.

    ``pattern`` must contain ``{}``, replaced by the backup index. Index
    ``base`` is always the most recent backup.
    """

    def __init__(self, pattern: str, count: int, base: int = 0):
        if INDEX_PLACEHOLDER not in pattern:
            raise ValueError(f"Rolling pattern must contain {{}}: {pattern!r}")
        if count < 0:
            raise ValueError("count must be >= 0")
        self.pattern = pattern
        self.count = count
        self.base = base

    @classmethod
    def from_policy(cls, pattern: str, policy: RollingPolicy) -> "FixedWindowRoller":
        return cls(pattern, policy.window_size)

    def backup_path(self, index: int) -> Path:
        # str.format would choke on braces elsewhere in the directory name
        return Path(self.pattern.replace(INDEX_PLACEHOLDER, str(index)))

    def roll(self, path: Union[str, Path]) -> None:
        """Move the rotated file at *path* into the backup window."""
        if self.count == 0:
            os.remove(path)
            return

        oldest = self.backup_path(self.base + self.count - 1)
        if oldest.exists():
            oldest.unlink()

        for index in range(self.base + self.count - 2, self.base - 1, -1):
            src = self.backup_path(index)
            if src.exists():
                os.replace(src, self.backup_path(index + 1))

        os.replace(path, self.backup_path(self.base))

    # loguru calls the ``compression`` callable with the rotated file path
    __call__ = roll
