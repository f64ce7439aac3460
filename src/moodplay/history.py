"""Mood-tagged listening history, bucketed by minute."""
import uuid
import logging
from datetime import datetime
from typing import Callable, List, Optional

from .models import HistoryEntry, MediaItem
from .storage import HistoryStore

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"
TIME_FORMAT = "%H:%M"


def new_entry_id() -> str:
    return uuid.uuid4().hex[:12]


class HistoryAggregationEngine:
    """Merge play events into a deduplicated, newest-first history log.

    Songs played under the same mood within the same wall-clock minute
    share one entry. Every change is written through to the store.
    """

    def __init__(
        self,
        store: Optional[HistoryStore] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the engine and load the persisted log.

        Args:
            store: Storage backend (defaults to the XDG data dir)
            clock: Source of the current time
        """
        self.store = store if store is not None else HistoryStore()
        self.clock = clock
        self._entries: List[HistoryEntry] = self.store.load()
        logger.info(f"History loaded: {len(self._entries)} entries")

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def record(self, mood: str, item: MediaItem) -> HistoryEntry:
        """Record that *item* started playing under *mood*.

        Args:
            mood: Mood label the item was played from
            item: The item that started playing

        Returns:
            The entry now holding the item
        """
        now = self.clock()
        bucket = (mood, now.strftime(DATE_FORMAT), now.strftime(TIME_FORMAT))

        for index, entry in enumerate(self._entries):
            if entry.bucket != bucket:
                continue

            if entry.has_song(item.id):
                logger.debug(f"History: {item.id} already in {bucket}")
                return entry

            updated = entry.with_song(item)
            self._entries[index] = updated
            logger.debug(f"History: merged {item.id} into {bucket}")
            self.store.save(self._entries)
            return updated

        entry = HistoryEntry(id=new_entry_id(), mood=mood, date=bucket[1], time=bucket[2], songs=[item])
        self._entries.insert(0, entry)
        logger.debug(f"History: new entry {entry.id} for {bucket}")
        self.store.save(self._entries)
        return entry

    def clear(self) -> None:
        """Empty the log and remove the persisted copy."""
        self._entries = []
        self.store.remove()
        logger.info("History cleared")
