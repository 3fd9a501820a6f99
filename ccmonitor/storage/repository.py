"""
Repository pattern for the persisted aggregation state.

Handles reading and writing of the hourly stats store and the seen message
ID store. Both are plain text files, fully rewritten on every save by
replacing the previous file with a completed temporary one. The ID store
carries the digest of the stats store it was written with, so a pair that
was not saved together can be told apart on load.
"""

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Set, Union

from .models import HourlyStats

log = logging.getLogger(__name__)

DIGEST_HEADER = "# stats-sha256 "


def content_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write data to a temporary file beside path, then move it into place.

    Raises:
        OSError: If the file cannot be written or replaced
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_file = tempfile.NamedTemporaryFile(
        "wb",
        dir=str(target.parent),
        prefix=f".{target.name}.",
        delete=False,
    )
    temp_name = temp_file.name
    try:
        with temp_file:
            temp_file.write(data)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_name, target)
    finally:
        if os.path.exists(temp_name):
            os.remove(temp_name)


@dataclass(frozen=True)
class StatsSnapshot:
    """Buckets read from the stats store."""
    buckets: Dict[str, HourlyStats]
    digest: str
    skipped_lines: int = 0


@dataclass(frozen=True)
class SeenSnapshot:
    """Message IDs read from the ID store."""
    message_ids: Set[str]
    stats_digest: Optional[str] = None


class HourlyStatsStore:
    """Line-delimited JSON store of hourly stats, one bucket per line.

    Lines are written sorted ascending by hour.
    """

    def __init__(self, path: Union[str, Path]):
        """Initialize the store with a file path.

        Args:
            path: Location of the JSONL file
        """
        self.path = Path(path)

    def load(self) -> Optional[StatsSnapshot]:
        """Read every bucket from disk.

        Each line is parsed independently; a bad line is skipped without
        aborting the rest and counted in `skipped_lines`.

        Returns:
            Snapshot of the buckets, or None when the store is missing,
            unreadable, or contains no parsable line at all
        """
        try:
            data = self.path.read_bytes()
            content = data.decode("utf-8")
        except FileNotFoundError:
            log.debug("No hourly stats store at %s", self.path)
            return None
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Could not read hourly stats store %s: %s", self.path, e)
            return None

        buckets: Dict[str, HourlyStats] = {}
        bad_lines = 0
        for line in content.splitlines():
            if not line.strip():
                continue
            try:
                stats = HourlyStats.from_record(json.loads(line))
            except ValueError:
                # json.JSONDecodeError is a ValueError subclass
                bad_lines += 1
                continue
            buckets[stats.hour] = stats

        if bad_lines:
            log.warning(
                "Skipped %d malformed line(s) in hourly stats store %s",
                bad_lines, self.path,
            )
        if not buckets:
            return None
        return StatsSnapshot(buckets=buckets, digest=content_digest(data), skipped_lines=bad_lines)

    def save(self, buckets: Mapping[str, HourlyStats]) -> str:
        """Replace the store with every bucket, sorted by hour.

        Args:
            buckets: Mapping of hour key to stats

        Returns:
            Digest of the written content

        Raises:
            OSError: If the file cannot be written
        """
        lines = [
            json.dumps(buckets[hour].to_record())
            for hour in sorted(buckets)
        ]
        data = ("\n".join(lines) + ("\n" if lines else "")).encode("utf-8")
        atomic_write_bytes(self.path, data)
        return content_digest(data)


class SeenMessageStore:
    """Plain text store of message IDs already folded into the stats store.

    The first line records the digest of the stats store saved alongside.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[SeenSnapshot]:
        """Read the stored IDs.

        Returns:
            Snapshot of the IDs, or None when the store is missing or unreadable
        """
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Could not read seen message store %s: %s", self.path, e)
            return None

        stats_digest = None
        message_ids = set()
        for line in content.splitlines():
            line = line.strip()
            if line.startswith(DIGEST_HEADER):
                stats_digest = line[len(DIGEST_HEADER):].strip()
            elif line:
                message_ids.add(line)
        return SeenSnapshot(message_ids=message_ids, stats_digest=stats_digest)

    def save(self, message_ids: Iterable[str], stats_digest: str) -> None:
        """Replace the store with the given IDs, one per line.

        Args:
            message_ids: IDs folded into the stats store
            stats_digest: Digest returned by the matching HourlyStatsStore.save

        Raises:
            OSError: If the file cannot be written
        """
        lines = [DIGEST_HEADER + stats_digest]
        lines.extend(sorted(message_ids))
        atomic_write_bytes(self.path, ("\n".join(lines) + "\n").encode("utf-8"))
