"""Data types shared by the session store, history log and UI."""
from dataclasses import dataclass, field, replace
from typing import List, Optional


@dataclass(frozen=True)
class MediaItem:
    """A playable item as captured into the session and the history log."""
    id: str
    title: str
    artist: str
    thumbnail_url: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "thumbnail": self.thumbnail_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MediaItem":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            artist=data.get("artist", ""),
            thumbnail_url=data.get("thumbnail", ""),
        )


@dataclass
class HistoryEntry:
    """Songs played under one mood within the same minute, newest first."""
    id: str
    mood: str
    date: str
    time: str
    songs: List[MediaItem] = field(default_factory=list)

    @property
    def bucket(self) -> tuple[str, str, str]:
        return (self.mood, self.date, self.time)

    def has_song(self, song_id: str) -> bool:
        return any(song.id == song_id for song in self.songs)

    def with_song(self, item: MediaItem) -> "HistoryEntry":
        """Return a copy with *item* prepended to the song list."""
        return replace(self, songs=[item, *self.songs])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "mood": self.mood,
            "date": self.date,
            "time": self.time,
            "songs": [song.to_dict() for song in self.songs],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        return cls(
            id=str(data["id"]),
            mood=data["mood"],
            date=data["date"],
            time=data["time"],
            songs=[MediaItem.from_dict(song) for song in data.get("songs", [])],
        )


@dataclass(frozen=True)
class Notification:
    """A user-visible message for the presentation layer to render."""
    title: str
    subtitle: Optional[str] = None
