"""Find YouTube music for a mood."""
import os
import html
import json
import logging
import subprocess
from typing import List

from googleapiclient.discovery import build

from .models import MediaItem

logger = logging.getLogger(__name__)

MOODS = ["Happy", "Sad", "Energetic", "Romantic", "Calm", "Melancholy", "Night", "Discover"]

# Search phrase per mood; anything else is searched as "<mood> music"
MOOD_QUERIES = {
    "Happy": "happy upbeat songs",
    "Sad": "sad songs",
    "Energetic": "energetic workout music",
    "Romantic": "romantic love songs",
    "Calm": "calm relaxing music",
    "Melancholy": "melancholic songs",
    "Night": "late night chill music",
    "Discover": "new music discoveries",
}

MOCK_ITEMS = [
    MediaItem("jfKfPfyJRdk", "lofi hip hop radio", "Lofi Girl", "https://i.ytimg.com/vi/jfKfPfyJRdk/hqdefault.jpg"),
    MediaItem("ZbZSe6N_BXs", "Happy", "Pharrell Williams", "https://i.ytimg.com/vi/ZbZSe6N_BXs/hqdefault.jpg"),
    MediaItem("hLQl3WQQoQ0", "Someone Like You", "Adele", "https://i.ytimg.com/vi/hLQl3WQQoQ0/hqdefault.jpg"),
    MediaItem("4NRXx6U8ABQ", "Blinding Lights", "The Weeknd", "https://i.ytimg.com/vi/4NRXx6U8ABQ/hqdefault.jpg"),
]


def mood_query(mood: str) -> str:
    return MOOD_QUERIES.get(mood, f"{mood.lower()} music")


class MoodCatalog:
    """Search YouTube for items matching a mood."""

    def __init__(self, api_key: str | None = None, mock_mode: bool = False):
        """Initialize the catalog.

        Args:
            api_key: YouTube Data API v3 key. If None, reads YOUTUBE_API_KEY;
                without a key only yt-dlp search is used.
            mock_mode: If True, return built-in items without any network access.
        """
        self.mock_mode = mock_mode
        self.api_key = None if mock_mode else (api_key or os.environ.get("YOUTUBE_API_KEY"))
        self.youtube = None

        if self.api_key:
            self.youtube = build("youtube", "v3", developerKey=self.api_key)
        elif mock_mode:
            logger.info("Mock mode enabled - using built-in catalog")

    def search(self, mood: str, max_results: int = 10) -> List[MediaItem]:
        """Return items for *mood*.

        Args:
            mood: Mood label, e.g. "Calm"
            max_results: Maximum number of items to return

        Returns:
            Matching items; empty if every search method failed
        """
        if self.mock_mode:
            return MOCK_ITEMS[:max_results]

        query = mood_query(mood)
        if self.youtube is not None:
            try:
                return self.api_search(query, max_results)
            except Exception as e:
                logger.warning(f"YouTube API search failed ({type(e).__name__}: {e}), falling back to yt-dlp")

        results = self.ytdlp_search(query, max_results)
        if not results:
            logger.error(f"No results for mood '{mood}' (query '{query}')")
        return results

    def api_search(self, query: str, max_results: int) -> List[MediaItem]:
        logger.info(f"Searching YouTube API for: '{query}' (max_results={max_results})")
        response = self.youtube.search().list(
            part="snippet",
            q=query,
            type="video",
            videoCategoryId="10",  # Music
            maxResults=max_results,
            safeSearch="moderate",
            videoEmbeddable="true",
        ).execute()

        items = []
        for result in response.get("items", []):
            try:
                snippet = result["snippet"]
                items.append(MediaItem(
                    id=result["id"]["videoId"],
                    title=html.unescape(snippet["title"]),
                    artist=html.unescape(snippet["channelTitle"]),
                    thumbnail_url=snippet["thumbnails"]["high"]["url"],
                ))
            except (KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed result - {type(e).__name__}: {e}")

        logger.info(f"API search returned {len(items)} items")
        return items

    def ytdlp_search(self, query: str, max_results: int) -> List[MediaItem]:
        logger.info(f"Using yt-dlp search for: '{query}' (max_results={max_results})")
        try:
            result = subprocess.run(
                ["yt-dlp", f"ytsearch{max_results}:{query}", "--dump-json", "--flat-playlist", "--no-warnings"],
                capture_output=True,
                text=True,
                timeout=30,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"yt-dlp search error: {type(e).__name__}: {e}")
            return []

        if result.returncode != 0:
            logger.error(f"yt-dlp search failed: {result.stderr}")
            return []

        items = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            try:
                data = json.loads(line)
                items.append(MediaItem(
                    id=data["id"],
                    title=html.unescape(data.get("title") or "Unknown"),
                    artist=html.unescape(data.get("uploader") or data.get("channel") or "Unknown"),
                    thumbnail_url=data.get("thumbnail") or _default_thumbnail(data["id"]),
                ))
            except (json.JSONDecodeError, KeyError) as e:
                logger.warning(f"Failed to parse yt-dlp result line: {e}")

        logger.info(f"yt-dlp search returned {len(items)} items")
        return items


def _default_thumbnail(video_id: str) -> str:
    return f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"
