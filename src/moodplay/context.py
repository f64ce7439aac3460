"""Process-wide wiring of the session store and the history log."""
import logging
from typing import Callable, List, Optional

from .history import HistoryAggregationEngine
from .i18n import _
from .models import HistoryEntry, MediaItem, Notification
from .session import DEFAULT_MOOD, PlaybackSessionStore

logger = logging.getLogger(__name__)


class PlayerContext:
    """Own the playback session and the listening history."""

    def __init__(
        self,
        history: Optional[HistoryAggregationEngine] = None,
        notify: Optional[Callable[[Notification], None]] = None,
    ):
        """Initialize the context, loading the persisted history.

        Args:
            history: History engine (defaults to one backed by the XDG data dir)
            notify: Receives user-visible notifications
        """
        self.history = history if history is not None else HistoryAggregationEngine()
        self.notify = notify
        self.session = PlaybackSessionStore(record=self.history.record, notify=self._emit)

    @property
    def entries(self) -> List[HistoryEntry]:
        return self.history.entries

    def play_item(self, id: str, title: str, artist: str, thumbnail: str, mood: str = DEFAULT_MOOD) -> None:
        """Play an item picked in the UI and record it under *mood*."""
        self.session.play_item(MediaItem(id=id, title=title, artist=artist, thumbnail_url=thumbnail), mood)

    def stop_playback(self) -> None:
        self.session.stop()

    def set_playing(self, playing: bool) -> None:
        self.session.set_playing(playing)

    def toggle_playing(self) -> None:
        self.session.set_playing(not self.session.is_playing)

    def clear_history(self) -> None:
        self.history.clear()
        self._emit(Notification(title=_("history_cleared")))

    def _emit(self, notification: Notification) -> None:
        if self.notify:
            self.notify(notification)
