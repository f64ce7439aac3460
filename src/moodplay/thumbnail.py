"""Render item thumbnails as terminal pixels."""
import io
import os
import hashlib
import logging
from pathlib import Path
from typing import Optional

import requests
from PIL import Image
from platformdirs import user_cache_dir
from rich_pixels import Pixels

logger = logging.getLogger(__name__)

# Can be overridden with MOODPLAY_CACHE_DIR environment variable
DEFAULT_CACHE_ROOT = os.environ.get("MOODPLAY_CACHE_DIR") or user_cache_dir("moodplay")


class ThumbnailCache:
    """Raw thumbnail bytes on disk, keyed by URL hash."""

    def __init__(self, cache_dir: str | None = None, max_files: int = 200):
        if cache_dir is None:
            cache_dir = str(Path(DEFAULT_CACHE_ROOT) / "thumbnails")
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.max_files = max_files

    def _path(self, url: str) -> Path:
        return self.cache_dir / f"{hashlib.md5(url.encode()).hexdigest()}.img"

    def get(self, url: str) -> Optional[bytes]:
        path = self._path(url)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug(f"ThumbnailCache read failed for {path.name}: {e}")
            return None

    def set(self, url: str, data: bytes) -> None:
        try:
            self._path(url).write_bytes(data)
        except OSError as e:
            logger.debug(f"ThumbnailCache write failed: {e}")
            return
        self._enforce_limits()

    def _enforce_limits(self) -> None:
        files = sorted(self.cache_dir.glob("*.img"), key=lambda p: p.stat().st_mtime)
        excess = len(files) - self.max_files
        for path in files[:max(0, excess)]:
            path.unlink(missing_ok=True)
        if excess > 0:
            logger.info(f"ThumbnailCache evicted {excess} files")


_raw_cache: Optional[ThumbnailCache] = None

# Key: (url, max_width)
_rendered: dict[tuple[str, int], Pixels] = {}


def fetch_thumbnail(url: str) -> bytes:
    """Return raw image bytes, from the disk cache when possible."""
    global _raw_cache
    if _raw_cache is None:
        _raw_cache = ThumbnailCache()

    data = _raw_cache.get(url)
    if data is None:
        logger.debug(f"Downloading thumbnail: {url[:50]}...")
        response = requests.get(url, timeout=5)
        response.raise_for_status()
        data = response.content
        _raw_cache.set(url, data)
    return data


def render_thumbnail(url: str, max_width: int = 40) -> Pixels | str:
    """Render a thumbnail at *max_width* characters.

    Returns:
        A rich renderable, or a dim markup placeholder if the image
        could not be loaded
    """
    key = (url, max_width)
    if key in _rendered:
        return _rendered[key]

    try:
        image = Image.open(io.BytesIO(fetch_thumbnail(url)))
        # Each character cell holds two vertical pixels
        height = max(1, int(max_width * image.height / image.width * 0.5))
        image = image.resize((max_width, height * 2), Image.Resampling.LANCZOS)
        pixels = Pixels.from_image(image)
    except Exception as e:
        logger.warning(f"Failed to load thumbnail from {url[:50]}...: {e}")
        return f"[dim]{url}[/dim]"

    _rendered[key] = pixels
    return pixels
