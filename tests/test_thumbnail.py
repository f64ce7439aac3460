"""Tests for thumbnail download, caching and rendering."""
import io
from unittest import mock

import pytest
import requests
from PIL import Image

from moodplay import thumbnail
from moodplay.thumbnail import ThumbnailCache, render_thumbnail


def png_bytes(size=(64, 48)):
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def isolated_cache(tmp_path, monkeypatch):
    cache = ThumbnailCache(cache_dir=str(tmp_path / "thumbs"), max_files=2)
    monkeypatch.setattr(thumbnail, "_raw_cache", cache)
    monkeypatch.setattr(thumbnail, "_rendered", {})
    return cache


def test_render_downloads_once_and_caches(isolated_cache):
    response = mock.Mock(content=png_bytes())
    with mock.patch.object(thumbnail.requests, "get", return_value=response) as get:
        first = render_thumbnail("https://img/a.png", max_width=20)
        second = render_thumbnail("https://img/a.png", max_width=20)

    assert not isinstance(first, str)
    assert first is second
    get.assert_called_once_with("https://img/a.png", timeout=5)
    assert isolated_cache.get("https://img/a.png") == response.content


def test_disk_cache_skips_download(isolated_cache):
    isolated_cache.set("https://img/b.png", png_bytes())

    with mock.patch.object(thumbnail.requests, "get") as get:
        render_thumbnail("https://img/b.png", max_width=10)

    get.assert_not_called()


def test_failed_download_renders_placeholder():
    with mock.patch.object(thumbnail.requests, "get", side_effect=requests.ConnectionError("offline")):
        result = render_thumbnail("https://img/c.png")

    assert result == "[dim]https://img/c.png[/dim]"
    assert thumbnail._rendered == {}


def test_cache_evicts_beyond_max_files(isolated_cache):
    for name in ("one", "two", "three"):
        isolated_cache.set(f"https://img/{name}.png", b"data")

    assert len(list(isolated_cache.cache_dir.glob("*.img"))) == 2
