"""Tests for mood search."""
import json
import subprocess
from unittest import mock

import pytest

from moodplay import catalog
from moodplay.catalog import MOCK_ITEMS, MoodCatalog, mood_query


@pytest.fixture(autouse=True)
def no_api_key(monkeypatch):
    monkeypatch.delenv("YOUTUBE_API_KEY", raising=False)


def ytdlp_output(*results):
    return "\n".join(json.dumps(r) for r in results) + "\n"


def test_mock_mode_returns_builtin_items():
    with mock.patch.object(catalog.subprocess, "run") as run:
        items = MoodCatalog(mock_mode=True).search("Happy", max_results=2)

    assert items == MOCK_ITEMS[:2]
    run.assert_not_called()


def test_mood_query():
    assert mood_query("Calm") == "calm relaxing music"
    assert mood_query("Rainy") == "rainy music"


def test_ytdlp_search_parses_results():
    completed = subprocess.CompletedProcess([], 0, stdout=ytdlp_output(
        {"id": "v1", "title": "Rock &amp; Roll", "uploader": "Band", "thumbnail": "https://img/v1.jpg"},
        {"id": "v2", "title": "Quiet", "channel": "Solo"},
        {"title": "no id"},
    ), stderr="")

    with mock.patch.object(catalog.subprocess, "run", return_value=completed) as run:
        items = MoodCatalog().search("Energetic", max_results=3)

    assert run.call_args[0][0][1] == "ytsearch3:energetic workout music"
    assert [(i.id, i.title, i.artist) for i in items] == [("v1", "Rock & Roll", "Band"), ("v2", "Quiet", "Solo")]
    assert items[1].thumbnail_url == "https://i.ytimg.com/vi/v2/hqdefault.jpg"


def test_ytdlp_failure_returns_empty():
    completed = subprocess.CompletedProcess([], 1, stdout="", stderr="ERROR: network")

    with mock.patch.object(catalog.subprocess, "run", return_value=completed):
        assert MoodCatalog().search("Sad") == []


def test_ytdlp_timeout_returns_empty():
    with mock.patch.object(catalog.subprocess, "run", side_effect=subprocess.TimeoutExpired("yt-dlp", 30)):
        assert MoodCatalog().search("Sad") == []


def test_api_search_falls_back_to_ytdlp():
    youtube = mock.Mock()
    youtube.search.return_value.list.return_value.execute.side_effect = RuntimeError("quota exceeded")
    completed = subprocess.CompletedProcess([], 0, stdout=ytdlp_output({"id": "v1", "title": "T", "uploader": "U"}), stderr="")

    with mock.patch.object(catalog, "build", return_value=youtube), \
         mock.patch.object(catalog.subprocess, "run", return_value=completed):
        items = MoodCatalog(api_key="key").search("Night")

    assert [i.id for i in items] == ["v1"]


def test_api_search_maps_snippets():
    youtube = mock.Mock()
    youtube.search.return_value.list.return_value.execute.return_value = {"items": [
        {"id": {"videoId": "v9"}, "snippet": {
            "title": "Love &#39;Song&#39;",
            "channelTitle": "Crooner",
            "thumbnails": {"high": {"url": "https://img/v9.jpg"}},
        }},
        {"id": {"kind": "youtube#channel"}, "snippet": {}},
    ]}

    with mock.patch.object(catalog, "build", return_value=youtube):
        items = MoodCatalog(api_key="key").search("Romantic", max_results=5)

    assert [(i.id, i.title, i.artist, i.thumbnail_url) for i in items] == [
        ("v9", "Love 'Song'", "Crooner", "https://img/v9.jpg"),
    ]
    assert youtube.search.return_value.list.call_args.kwargs["q"] == "romantic love songs"


def test_missing_api_key_uses_ytdlp_only():
    with mock.patch.object(catalog, "build") as build:
        searcher = MoodCatalog()

    assert searcher.youtube is None
    build.assert_not_called()
