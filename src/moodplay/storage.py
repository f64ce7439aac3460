"""Durable storage for the listening history."""
import os
import json
import logging
from pathlib import Path
from typing import List
from platformdirs import user_data_dir

from .models import HistoryEntry

logger = logging.getLogger(__name__)

# XDG-compliant data directory
# Can be overridden with MOODPLAY_DATA_DIR environment variable
DEFAULT_DATA_ROOT = os.environ.get("MOODPLAY_DATA_DIR") or user_data_dir("moodplay")

HISTORY_KEY = "playbackHistory"


class HistoryStore:
    """Load and save the history log as one JSON document."""

    def __init__(self, data_dir: str | None = None, key: str = HISTORY_KEY):
        """Initialize the store.

        Args:
            data_dir: Directory holding the history file (defaults to XDG data dir)
            key: Storage key, used as the file name
        """
        if data_dir is None:
            data_dir = DEFAULT_DATA_ROOT
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / f"{key}.json"

    def load(self) -> List[HistoryEntry]:
        """Read the persisted log.

        Returns:
            The stored entries, newest first, or an empty list if the
            file is missing or does not hold a valid log
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [HistoryEntry.from_dict(entry) for entry in data]
        except Exception as e:
            logger.warning(f"Discarding unreadable history at {self.path}: {type(e).__name__}: {e}")
            return []

    def save(self, entries: List[HistoryEntry]) -> None:
        """Write the full log, replacing the previous copy atomically."""
        tmp = self.path.with_suffix(".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump([entry.to_dict() for entry in entries], f, ensure_ascii=False, indent=2)
            tmp.replace(self.path)
            logger.debug(f"Saved {len(entries)} history entries to {self.path}")
        except OSError as e:
            logger.error(f"Failed to save history to {self.path}: {e}")
            if tmp.exists():
                tmp.unlink()

    def remove(self) -> None:
        """Delete the persisted copy."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove history at {self.path}: {e}")
