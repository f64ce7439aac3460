import os
import sys
import logging
from shutil import which
from textual.app import App, ComposeResult
from textual.containers import Container, Vertical, Horizontal, ScrollableContainer
from textual.widgets import Button, Static, Label, LoadingIndicator
from textual.binding import Binding
from textual.message import Message
from textual import work
from textual.logging import TextualHandler

from .catalog import MOODS, MoodCatalog
from .context import PlayerContext
from .models import HistoryEntry, MediaItem, Notification
from .mpv import MPV_BINARY, get_player_api
from .player import PlayerAdapter, PlayerStatus
from .session import SessionChange
from .thumbnail import render_thumbnail
from .i18n import _

# Configured at import so `textual run --dev moodplay.main` logs too.
# WARNING for normal users, DEBUG only if MOODPLAY_DEBUG is set
log_level = "DEBUG" if os.environ.get("MOODPLAY_DEBUG") else "WARNING"
logging.basicConfig(
    level=log_level,
    handlers=[TextualHandler()],
)

MOOD_CLASSES = {mood: f"mood-{mood.lower()}" for mood in MOODS}


def check_external_dependencies() -> None:
    """Exit with status 1 if mpv or yt-dlp is missing."""
    missing = [tool for tool in (MPV_BINARY, "yt-dlp") if which(tool) is None]

    if missing:
        print("Error: Missing required dependencies:", ", ".join(missing), file=sys.stderr)
        print("\nPlease install them:", file=sys.stderr)
        print("  Ubuntu/Debian: sudo apt install yt-dlp mpv", file=sys.stderr)
        print("  macOS: brew install yt-dlp mpv", file=sys.stderr)
        print("  Windows: scoop install yt-dlp mpv", file=sys.stderr)
        sys.exit(1)


def format_seconds(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def mood_class(mood: str) -> str:
    return MOOD_CLASSES.get(mood, "mood-discover")


class ResultCard(Static):
    """One playable item in the results list."""

    def __init__(self, item: MediaItem, mood: str, *args, **kwargs):
        super().__init__(f"[b]{item.title}[/b]\n{item.artist}", *args, **kwargs)
        self.item = item
        self.mood = mood
        self.add_class("result-card")

    def on_click(self) -> None:
        self.post_message(PlayRequested(self.item, self.mood))


class PlayRequested(Message):
    """Posted when the user picks an item to play."""

    def __init__(self, item: MediaItem, mood: str):
        super().__init__()
        self.item = item
        self.mood = mood


class HistoryCard(Vertical):
    """A history entry; clicking the header shows or hides its songs."""

    def __init__(self, entry: HistoryEntry, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entry = entry
        self.add_class("history-card")

    def compose(self) -> ComposeResult:
        entry = self.entry
        with Horizontal(classes="history-header"):
            yield Label(entry.mood, classes=f"mood-tag {mood_class(entry.mood)}")
            yield Label(f"{entry.date}  {entry.time}", classes="history-when")
            yield Label(_("history_songs", count=len(entry.songs)), classes="history-count")
        with Vertical(classes="history-songs hidden"):
            for song in entry.songs:
                yield ResultCard(song, entry.mood)

    def on_click(self, event) -> None:
        if isinstance(event.widget, ResultCard):
            return
        self.query_one(".history-songs").toggle_class("hidden")


class MoodplayApp(App):
    """Play YouTube music by mood and keep a listening history."""

    CSS = """
    #mood-bar {
        dock: top;
        height: 3;
        background: $panel;
    }

    .mood-button {
        min-width: 10;
        margin: 0 1 0 0;
    }

    #main-content {
        height: 1fr;
    }

    #results-container, #history-container {
        height: 1fr;
        width: 100%;
    }

    #loading-container {
        height: 1fr;
        align: center middle;
    }

    .result-card {
        height: auto;
        border: solid $primary;
        padding: 0 1;
        margin: 0 1;
    }

    .result-card:hover {
        background: $boost;
        border: solid $accent;
    }

    .history-card {
        height: auto;
        border: round $primary;
        margin: 0 1 1 1;
    }

    .history-header {
        height: 1;
    }

    .history-songs {
        height: auto;
    }

    .mood-tag {
        padding: 0 1;
        margin-right: 2;
    }

    .mood-happy, .mood-calm { background: $warning; color: black; }
    .mood-sad, .mood-night { background: $primary-darken-2; }
    .mood-energetic { background: $error; }
    .mood-romantic { background: $accent; }
    .mood-melancholy { background: $secondary; }
    .mood-discover { background: $success; }

    #player-view {
        height: 1fr;
    }

    #player-content {
        height: 1fr;
        align: center middle;
        overflow: hidden;
    }

    #now-playing, #player-status {
        width: 100%;
        text-align: center;
    }

    #controls-container {
        align: center middle;
        height: 3;
    }

    .control-button {
        margin: 0 1;
    }

    .hidden {
        display: none;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "show_moods", _("moods"), show=True),
        Binding("ctrl+r", "show_history", _("history"), show=True),
        Binding("space", "toggle_playback", _("play_pause"), show=True),
        Binding("escape", "back_to_player", _("back_to_player"), show=False),
        Binding("ctrl+x", "clear_history", _("clear_history"), show=True),
        Binding("ctrl+t", "stop", _("stop"), show=True),
        Binding("ctrl+c", "quit", _("quit"), show=True),
    ]

    def compose(self) -> ComposeResult:
        with Horizontal(id="mood-bar"):
            for mood in MOODS:
                yield Button(mood, id=f"mood-{mood.lower()}", classes="mood-button")

        with Container(id="main-content"):
            yield ScrollableContainer(Vertical(Label(_("pick_mood")), id="results-list"), id="results-container")

            with Container(id="loading-container", classes="hidden"):
                yield LoadingIndicator()

            yield ScrollableContainer(Vertical(id="history-list"), id="history-container", classes="hidden")

            with Vertical(id="player-view", classes="hidden"):
                with Container(id="player-content"):
                    yield Static("", id="player-thumbnail")
                yield Label(_("nothing_playing"), id="now-playing")
                yield Label(_("starting_player"), id="player-status")
                with Horizontal(id="controls-container"):
                    yield Button(_("seek_back"), id="seek-back", classes="control-button")
                    yield Button(_("play_pause"), id="play-pause", classes="control-button")
                    yield Button(_("seek_forward"), id="seek-forward", classes="control-button")
                    yield Button(_("vol_down"), id="vol-down", classes="control-button")
                    yield Button(_("vol_up"), id="vol-up", classes="control-button")
                    yield Button(_("mute"), id="mute", classes="control-button")

    def on_mount(self) -> None:
        self.log("moodplay starting up")

        mock_mode = os.environ.get("MOODPLAY_MOCK_MODE", "").lower() in ("1", "true", "yes")
        self.catalog = MoodCatalog(mock_mode=mock_mode)

        self.context = PlayerContext(notify=self.show_notification)
        self.log(f"History loaded: {len(self.context.entries)} entries")
        self.context.session.subscribe(self.on_session_change)

        api = get_player_api()
        api.dispatch = self.call_from_thread
        self.player = PlayerAdapter(
            self.context.session,
            api,
            set_interval=self.set_interval,
            dispatch=self.call_from_thread,
            on_status=self.update_player_status,
        )
        self.player.start()
        self.log(f"Player adapter started ({self.player.state.value})")

    def on_unmount(self) -> None:
        self.log("moodplay shutting down")
        if hasattr(self, "player"):
            self.player.dispose()

    # ------------------------------------------------------------------
    # Views

    def show_view(self, view_id: str) -> None:
        for other in ("results-container", "loading-container", "history-container", "player-view"):
            self.query_one(f"#{other}").set_class(other != view_id, "hidden")

    def action_show_moods(self) -> None:
        self.show_view("results-container")

    def action_show_history(self) -> None:
        history_list = self.query_one("#history-list", Vertical)
        history_list.remove_children()

        entries = self.context.entries
        if not entries:
            history_list.mount(Label(_("no_history")))
        else:
            history_list.mount_all([HistoryCard(entry) for entry in entries])
        self.show_view("history-container")

    def action_back_to_player(self) -> None:
        if self.context.session.current_item is not None:
            self.show_view("player-view")

    def action_toggle_playback(self) -> None:
        self.context.toggle_playing()

    def action_stop(self) -> None:
        self.context.stop_playback()

    def action_clear_history(self) -> None:
        self.context.clear_history()
        if not self.query_one("#history-container").has_class("hidden"):
            self.action_show_history()

    # ------------------------------------------------------------------
    # Mood search

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""

        if button_id.startswith("mood-"):
            mood = str(event.button.label)
            self.show_view("loading-container")
            self.search_mood(mood)
        elif button_id == "play-pause":
            self.context.toggle_playing()
        elif button_id == "seek-back":
            self.player.seek_to(max(0.0, self.player.current_time - 10))
        elif button_id == "seek-forward":
            self.player.seek_to(self.player.current_time + 10)
        elif button_id == "vol-down":
            self.player.set_volume(self.player.volume - 10)
        elif button_id == "vol-up":
            self.player.set_volume(self.player.volume + 10)
        elif button_id == "mute":
            self.player.toggle_mute()

    @work(thread=True, exclusive=True)
    def search_mood(self, mood: str) -> None:
        self.call_from_thread(self.log, f"Searching catalog for mood '{mood}'")
        try:
            items = self.catalog.search(mood, max_results=20)
        except Exception as e:
            self.call_from_thread(self.show_results, mood, [], str(e))
            return
        self.call_from_thread(self.show_results, mood, items, None)

    def show_results(self, mood: str, items: list[MediaItem], error: str | None) -> None:
        results_list = self.query_one("#results-list", Vertical)
        results_list.remove_children()

        if error:
            results_list.mount(Label(f"[red]{_('error', error=error)}[/red]"))
        elif not items:
            results_list.mount(Label(_("no_results")))
        else:
            results_list.mount_all([ResultCard(item, mood) for item in items])
        self.show_view("results-container")

    # ------------------------------------------------------------------
    # Playback

    def on_play_requested(self, event: PlayRequested) -> None:
        item = event.item
        self.context.play_item(item.id, item.title, item.artist, item.thumbnail_url, event.mood)
        self.show_view("player-view")
        self.load_player_thumbnail(item.thumbnail_url, int(self.size.width * 0.6))

    @work(thread=True, exclusive=True, group="thumbnail")
    def load_player_thumbnail(self, url: str, width: int) -> None:
        thumbnail = render_thumbnail(url, max_width=max(20, width))

        def update_thumbnail():
            self.query_one("#player-thumbnail", Static).update(thumbnail)

        self.call_from_thread(update_thumbnail)

    def on_session_change(self, change: SessionChange) -> None:
        item = change.session.current_item
        now_playing = self.query_one("#now-playing", Label)
        if item is None:
            now_playing.update(_("nothing_playing"))
            self.query_one("#player-thumbnail", Static).update("")
        else:
            marker = "▶" if change.session.is_playing else "⏸"
            now_playing.update(f"{marker} {item.title} - {item.artist}")

    def update_player_status(self, status: PlayerStatus) -> None:
        self.query_one("#player-status", Label).update(_(
            "status_line",
            position=format_seconds(status.current_time),
            duration=format_seconds(status.duration),
            volume=status.volume,
            muted=_("muted") if status.is_muted else "",
        ))

    def show_notification(self, notification: Notification) -> None:
        if notification.subtitle:
            self.notify(notification.subtitle, title=notification.title, timeout=3)
        else:
            self.notify(notification.title, timeout=3)


def main():
    check_external_dependencies()

    app = MoodplayApp()
    app.run()


if __name__ == "__main__":
    main()
