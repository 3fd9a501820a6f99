"""
Incremental file change detection.

Remembers the modification time of every log file already read so that
unchanged files are skipped on the next scan. Not offset-aware: a changed
file is re-read in full and deduplication drops messages already counted.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

log = logging.getLogger(__name__)


class FileTracker:
    """Per-path last-observed modification times, in nanoseconds."""

    def __init__(self):
        self._mtimes: Dict[Path, int] = {}

    def current_mtime(self, path: Path) -> Optional[int]:
        """Return the file's modification time, or None if it cannot be stat'ed."""
        try:
            return path.stat().st_mtime_ns
        except OSError as e:
            log.debug("Could not stat %s: %s", path, e)
            return None

    def has_changed(self, path: Path, mtime: int) -> bool:
        """True when mtime is strictly newer than the last recorded one."""
        previous = self._mtimes.get(path)
        return previous is None or mtime > previous

    def record(self, path: Path, mtime: int) -> None:
        """Record the modification time observed for a file that was read."""
        self._mtimes[path] = mtime

    def reset(self) -> None:
        self._mtimes.clear()
