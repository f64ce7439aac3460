"""Current playback selection."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .i18n import _
from .models import MediaItem, Notification

logger = logging.getLogger(__name__)

DEFAULT_MOOD = "Music"


@dataclass(frozen=True)
class PlaybackSession:
    """Snapshot of what is selected and whether it should be playing."""
    current_item: Optional[MediaItem] = None
    is_playing: bool = False

    @property
    def current_id(self) -> Optional[str]:
        return self.current_item.id if self.current_item else None


@dataclass(frozen=True)
class SessionChange:
    """Broadcast after a mutation, once both fields hold their new values."""
    item_changed: bool
    playing_changed: bool
    session: PlaybackSession


class PlaybackSessionStore:
    """Hold the one live playback session of the process."""

    def __init__(
        self,
        record: Optional[Callable[[str, MediaItem], object]] = None,
        notify: Optional[Callable[[Notification], None]] = None,
    ):
        """Initialize the store.

        Args:
            record: Called with (mood, item) on every play_item
            notify: Receives the "now playing" notification
        """
        self._session = PlaybackSession()
        self._listeners: List[Callable[[SessionChange], None]] = []
        self._record = record
        self._notify = notify

    @property
    def session(self) -> PlaybackSession:
        return self._session

    @property
    def current_item(self) -> Optional[MediaItem]:
        return self._session.current_item

    @property
    def is_playing(self) -> bool:
        return self._session.is_playing

    def subscribe(self, listener: Callable[[SessionChange], None]) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def play_item(self, item: MediaItem, mood: str = DEFAULT_MOOD) -> None:
        """Select *item*, mark it playing, record it and announce it."""
        logger.info(f"play_item: {item.id} '{item.title}' (mood={mood})")
        self._update(PlaybackSession(current_item=item, is_playing=True))

        if self._record:
            self._record(mood, item)

        if self._notify:
            self._notify(Notification(title=_("now_playing", title=item.title), subtitle=item.artist))

    def stop(self) -> None:
        """Clear the selection."""
        self._update(PlaybackSession())

    def set_playing(self, playing: bool) -> None:
        """Change only the playing flag of the current selection."""
        if self._session.current_item is None:
            return
        self._update(PlaybackSession(self._session.current_item, playing))

    def _update(self, new: PlaybackSession) -> None:
        old = self._session
        self._session = new

        change = SessionChange(
            item_changed=old.current_id != new.current_id,
            playing_changed=old.is_playing != new.is_playing,
            session=new,
        )
        if not (change.item_changed or change.playing_changed):
            return

        for listener in list(self._listeners):
            listener(change)
