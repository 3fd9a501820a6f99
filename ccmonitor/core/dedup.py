"""
Message deduplication.

Claude Code writes the same assistant message more than once (streamed
updates, resumed sessions copying history). Each message ID is counted once.
"""

from typing import Iterable, Iterator, Optional, Set

from ccmonitor.storage.models import UsageFact


class Deduplicator:
    """First-seen-wins filter over message IDs."""

    def __init__(self, seen: Optional[Iterable[str]] = None):
        self._seen: Set[str] = set(seen or ())

    def __contains__(self, message_id: str) -> bool:
        return message_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    @property
    def seen_ids(self) -> Set[str]:
        """Copy of every ID accepted so far."""
        return set(self._seen)

    def accept(self, message_id: str) -> bool:
        """Mark an ID seen.

        Returns:
            True if the ID was new, False if it had already been accepted
        """
        if message_id in self._seen:
            return False
        self._seen.add(message_id)
        return True

    def filter(self, facts: Iterable[UsageFact]) -> Iterator[UsageFact]:
        """Yield only facts whose message ID has not been accepted before."""
        for fact in facts:
            if self.accept(fact.message_id):
                yield fact

    def reset(self, seen: Optional[Iterable[str]] = None) -> None:
        self._seen = set(seen or ())
