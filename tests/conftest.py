"""Shared fakes for the player, scheduler and clock."""
from datetime import datetime

import pytest

from moodplay.i18n import set_language
from moodplay.models import MediaItem
from moodplay.player import PlayerApi, PlayerSignal
from moodplay.storage import HistoryStore


@pytest.fixture(autouse=True)
def english():
    set_language("en")


class FakePlayer:
    """Records every command; callbacks are fired by the test."""

    def __init__(self, container_id, options, volume=100, muted=False):
        self.container_id = container_id
        self.options = options
        self.calls = []
        self.volume = volume
        self.muted = muted
        self.time = 0.0
        self.duration = 0.0
        self.destroyed = False

    def load_item_by_id(self, item_id):
        self.calls.append(("load", item_id))

    def play(self):
        self.calls.append(("play",))

    def pause(self):
        self.calls.append(("pause",))

    def seek_to(self, seconds, allow_seek_ahead):
        self.calls.append(("seek", seconds, allow_seek_ahead))

    def set_volume(self, volume):
        self.calls.append(("volume", volume))
        self.volume = volume

    def get_volume(self):
        return self.volume

    def mute(self):
        self.calls.append(("mute",))
        self.muted = True

    def un_mute(self):
        self.calls.append(("unmute",))
        self.muted = False

    def is_muted(self):
        return self.muted

    def get_current_time(self):
        return self.time

    def get_duration(self):
        return self.duration

    def destroy(self):
        self.destroyed = True

    # Test helpers

    def fire_ready(self):
        self.options.on_ready(self)

    def fire(self, signal: PlayerSignal):
        self.options.on_state_change(self, signal)


class FakeTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.stopped = False

    def stop(self):
        self.stopped = True


class FakeScheduler:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback):
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self):
        return [timer for timer in self.timers if not timer.stopped]

    def tick(self):
        for timer in self.active:
            timer.callback()


class ManualSpawn:
    """Collects bootstrap jobs instead of running them in a thread."""

    def __init__(self):
        self.jobs = []

    def __call__(self, job):
        self.jobs.append(job)

    def run_all(self):
        jobs, self.jobs = self.jobs, []
        for job in jobs:
            job()


class FakeLibrary:
    """Player factory that remembers the instances it created."""

    def __init__(self):
        self.players = []
        self.loads = 0

    def load(self):
        self.loads += 1
        return self.create

    def create(self, container_id, options):
        player = FakePlayer(container_id, options)
        self.players.append(player)
        return player


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def library():
    return FakeLibrary()


@pytest.fixture
def spawn():
    return ManualSpawn()


@pytest.fixture
def api(library, spawn):
    return PlayerApi(library.load, spawn=spawn)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def clock():
    return Clock(datetime(2024, 2, 1, 14, 5, 12))


@pytest.fixture
def store(tmp_path):
    return HistoryStore(data_dir=str(tmp_path))


@pytest.fixture
def song_a():
    return MediaItem("a1", "Song A", "Artist A", "a.png")


@pytest.fixture
def song_b():
    return MediaItem("b2", "Song B", "Artist B", "b.png")
