"""
Process-wide aggregation state.

CacheState owns the hourly buckets, the seen message IDs and the per-file
modification times. Its lifecycle is hydrate -> scan/persist repeatedly; it is
never torn down while the process runs.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .aggregation import fold_all, sorted_buckets
from .dedup import Deduplicator
from .file_tracker import FileTracker
from .log_reader import iter_log_files, load_all_facts, read_log_file
from ccmonitor.storage.models import HourlyStats
from ccmonitor.storage.paths import SEEN_IDS_FILENAME, STATS_FILENAME
from ccmonitor.storage.repository import HourlyStatsStore, SeenMessageStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanFilter:
    """Optional time filter applied to candidates before folding.

    Affects which facts are folded, never which files are opened.
    """
    since: Optional[datetime] = None
    lookback_hours: Optional[int] = None

    def cutoff(self, now: datetime) -> Optional[datetime]:
        """Earliest admitted event time, or None for no lower bound."""
        bounds = []
        if self.since is not None:
            bounds.append(self.since)
        if self.lookback_hours is not None:
            bounds.append(now - timedelta(hours=self.lookback_hours))
        return max(bounds) if bounds else None


@dataclass(frozen=True)
class ScanResult:
    """Outcome of one incremental scan."""
    files_read: int
    files_skipped: int
    facts_folded: int
    persisted: bool


class CacheState:
    """Hourly buckets plus the bookkeeping needed to fold each message once.

    Example:
        state = CacheState(data_dir, projects_dir)
        state.hydrate()
        state.scan()
    """

    def __init__(self, data_dir: Path, projects_dir: Path):
        """Construct an empty state.

        Args:
            data_dir: Directory holding the persisted stores
            projects_dir: Root of the Claude Code project logs
        """
        self.data_dir = Path(data_dir)
        self.projects_dir = Path(projects_dir)
        self.buckets: Dict[str, HourlyStats] = {}
        self.dedup = Deduplicator()
        self.tracker = FileTracker()
        self.stats_store = HourlyStatsStore(self.data_dir / STATS_FILENAME)
        self.seen_store = SeenMessageStore(self.data_dir / SEEN_IDS_FILENAME)
        self._dirty = False

    @classmethod
    def open(cls, data_dir: Path, projects_dir: Path) -> "CacheState":
        """Construct and hydrate a state in one step."""
        state = cls(data_dir, projects_dir)
        state.hydrate()
        return state

    @property
    def dirty(self) -> bool:
        """True when in-memory changes have not reached disk yet."""
        return self._dirty

    def hydrate(self) -> None:
        """Restore buckets and seen IDs from disk.

        A missing, empty or damaged bucket store is a cold start: both buckets
        and seen IDs start empty and the next scan re-aggregates every log.
        Seen IDs are restored only when the ID store was saved together with
        the current bucket store; otherwise they are rebuilt from a pass over
        all source logs.
        """
        self.tracker.reset()
        snapshot = self.stats_store.load()
        if snapshot is None or snapshot.skipped_lines:
            log.debug("Cold start: no usable hourly stats store")
            self.buckets = {}
            self.dedup.reset()
            # A damaged store is rewritten by the next scan
            self._dirty = snapshot is not None
            return

        self.buckets = snapshot.buckets
        seen = self.seen_store.load()
        if seen is not None and seen.stats_digest == snapshot.digest:
            self.dedup.reset(seen.message_ids)
            self._dirty = False
        else:
            if seen is not None:
                log.warning("Seen message store is out of date, rebuilding from %s", self.projects_dir)
            else:
                log.debug("No seen message store, rebuilding from %s", self.projects_dir)
            self.dedup.reset(fact.message_id for fact in load_all_facts(self.projects_dir))
            self._dirty = True
        log.debug("Hydrated %d bucket(s), %d seen message(s)", len(self.buckets), len(self.dedup))

    def scan(
        self,
        time_filter: Optional[ScanFilter] = None,
        now: Optional[datetime] = None,
    ) -> ScanResult:
        """Read changed log files, fold unseen facts, then persist if needed.

        Args:
            time_filter: Optional filter dropping candidates older than a cutoff
            now: Reference time for the lookback filter (defaults to UTC now)

        Returns:
            ScanResult with file counts and the number of newly folded facts
        """
        if now is None:
            now = datetime.now(timezone.utc)
        cutoff = time_filter.cutoff(now) if time_filter else None

        files_read = files_skipped = folded = 0
        for path in iter_log_files(self.projects_dir):
            mtime = self.tracker.current_mtime(path)
            if mtime is None:
                continue
            if not self.tracker.has_changed(path, mtime):
                files_skipped += 1
                continue

            facts = read_log_file(path)
            self.tracker.record(path, mtime)
            files_read += 1

            # Filtered candidates stay unseen so a wider query can fold them later
            if cutoff is not None:
                facts = [fact for fact in facts if fact.timestamp >= cutoff]
            folded += fold_all(self.buckets, self.dedup.filter(facts))

        if folded:
            self._dirty = True
            log.debug("Folded %d new fact(s) from %d file(s)", folded, files_read)

        persisted = self.persist() if self._dirty else False
        return ScanResult(
            files_read=files_read,
            files_skipped=files_skipped,
            facts_folded=folded,
            persisted=persisted,
        )

    def persist(self) -> bool:
        """Write buckets, then the seen IDs tagged with the buckets' digest.

        An I/O failure is logged and leaves the state dirty so the next scan
        retries; the in-memory buckets are kept either way.

        Returns:
            True if both stores were written
        """
        try:
            digest = self.stats_store.save(self.buckets)
            self.seen_store.save(self.dedup.seen_ids, digest)
        except OSError as e:
            log.warning("Could not persist usage cache to %s: %s", self.data_dir, e)
            self._dirty = True
            return False
        self._dirty = False
        return True

    def records(self) -> List[HourlyStats]:
        """All buckets in ascending hour order."""
        return sorted_buckets(self.buckets)
