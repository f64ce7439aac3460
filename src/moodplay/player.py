"""Lifecycle and command dispatch around an external media player.

The external player library is located asynchronously, once per process,
by a shared :class:`PlayerApi`. Each :class:`PlayerAdapter` waits for that
readiness broadcast, instantiates its own player, waits for the player's
ready callback, and only then forwards session changes and user commands.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol

from .session import PlaybackSessionStore, SessionChange

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0
DEFAULT_CONTAINER_ID = "moodplay-player"


class LifecycleState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING_API = "bootstrapping_api"
    INITIALIZING = "initializing"
    READY = "ready"
    DESTROYED = "destroyed"


class PlayerSignal(enum.Enum):
    """State transitions reported by the external player."""
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


class ExternalPlayer(Protocol):
    """What the adapter needs from a player instance."""

    def load_item_by_id(self, item_id: str) -> None: ...
    def play(self) -> None: ...
    def pause(self) -> None: ...
    def seek_to(self, seconds: float, allow_seek_ahead: bool) -> None: ...
    def set_volume(self, volume: int) -> None: ...
    def get_volume(self) -> int: ...
    def mute(self) -> None: ...
    def un_mute(self) -> None: ...
    def is_muted(self) -> bool: ...
    def get_current_time(self) -> float: ...
    def get_duration(self) -> float: ...
    def destroy(self) -> None: ...


class TimerHandle(Protocol):
    def stop(self) -> None: ...


@dataclass
class PlayerOptions:
    """Construction options passed to the player factory."""
    on_ready: Callable[[Any], None]
    on_state_change: Callable[[Any, PlayerSignal], None]
    autoplay: bool = False
    controls: bool = False


PlayerFactory = Callable[[str, PlayerOptions], ExternalPlayer]
Dispatch = Callable[..., Any]


def call_directly(callback: Callable, *args) -> Any:
    return callback(*args)


def _spawn_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, daemon=True, name="player-api-bootstrap").start()


class PlayerApi:
    """Process-wide handle on the external player library.

    The library is loaded at most once. Listeners registered before it is
    available are called when it becomes available; listeners registered
    afterwards are called immediately.
    """

    def __init__(
        self,
        load_library: Callable[[], PlayerFactory],
        dispatch: Dispatch = call_directly,
        spawn: Callable[[Callable[[], None]], None] = _spawn_thread,
    ):
        """Initialize the API handle.

        Args:
            load_library: Blocking loader returning the player factory;
                raises if the library is unavailable
            dispatch: Delivers the readiness broadcast to the caller's thread
            spawn: Runs the loader in the background
        """
        self._load_library = load_library
        self.dispatch = dispatch
        self._spawn = spawn
        self._listeners: List[Callable[[PlayerFactory], None]] = []
        self.factory: Optional[PlayerFactory] = None
        self.started = False
        self.failed = False

    @property
    def ready(self) -> bool:
        return self.factory is not None

    def when_ready(self, listener: Callable[[PlayerFactory], None]) -> bool:
        """Call *listener* with the player factory once the library is loaded.

        Returns:
            True if the library was already loaded and the listener has
            been called synchronously
        """
        if self.factory is not None:
            listener(self.factory)
            return True

        self._listeners.append(listener)
        if not self.started:
            self.started = True
            logger.info("Bootstrapping player API")
            self._spawn(self._bootstrap)
        return False

    def _bootstrap(self) -> None:
        try:
            factory = self._load_library()
        except Exception as e:
            # No retry: adapters waiting on us stay in BOOTSTRAPPING_API.
            self.failed = True
            logger.error(f"Player API failed to load: {type(e).__name__}: {e}")
            return
        self.dispatch(self.resolve, factory)

    def resolve(self, factory: PlayerFactory) -> None:
        """Mark the library as loaded and notify every pending listener."""
        if self.factory is not None:
            return
        self.factory = factory
        listeners, self._listeners = self._listeners, []
        logger.info(f"Player API ready, notifying {len(listeners)} listener(s)")
        for listener in listeners:
            try:
                listener(factory)
            except Exception as e:
                logger.error(f"Player API listener failed: {type(e).__name__}: {e}")


@dataclass(frozen=True)
class PlayerStatus:
    """Values the UI displays for the active player."""
    is_ready: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    volume: int = 100
    is_muted: bool = False


class PlayerAdapter:
    """Drive one external player instance from the playback session."""

    def __init__(
        self,
        session: PlaybackSessionStore,
        api: PlayerApi,
        set_interval: Callable[[float, Callable[[], None]], TimerHandle],
        dispatch: Dispatch = call_directly,
        container_id: str = DEFAULT_CONTAINER_ID,
        on_status: Optional[Callable[[PlayerStatus], None]] = None,
    ):
        """Initialize the adapter.

        Args:
            session: Store whose changes are turned into player commands
            api: Shared player library handle
            set_interval: Starts a repeating timer, returning a handle with stop()
            dispatch: Delivers player callbacks to the adapter's thread
            container_id: Identifier handed to the player factory
            on_status: Called whenever the displayed status changes
        """
        self.session = session
        self.api = api
        self.set_interval = set_interval
        self.dispatch = dispatch
        self.container_id = container_id
        self.on_status = on_status

        self.state = LifecycleState.UNINITIALIZED
        self.player: Optional[ExternalPlayer] = None
        self._poll_timer: Optional[TimerHandle] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

        self.current_time = 0.0
        self.duration = 0.0
        self.volume = 100
        self.is_muted = False

    @property
    def is_ready(self) -> bool:
        return self.state is LifecycleState.READY

    @property
    def is_polling(self) -> bool:
        return self._poll_timer is not None

    def status(self) -> PlayerStatus:
        return PlayerStatus(
            is_ready=self.is_ready,
            current_time=self.current_time,
            duration=self.duration,
            volume=self.volume,
            is_muted=self.is_muted,
        )

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self) -> None:
        """Subscribe to the session and begin bringing up the player."""
        if self.state is not LifecycleState.UNINITIALIZED:
            return

        self._unsubscribe = self.session.subscribe(self._on_session_change)
        if not self.api.ready:
            self.state = LifecycleState.BOOTSTRAPPING_API
        self.api.when_ready(self._on_api_ready)

    def dispose(self) -> None:
        """Stop polling and release the player instance."""
        if self.state is LifecycleState.DESTROYED:
            return

        logger.info(f"Disposing player adapter (was {self.state.value})")
        self.state = LifecycleState.DESTROYED
        self._stop_polling()

        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

        player, self.player = self.player, None
        if player is not None:
            try:
                player.destroy()
            except Exception as e:
                logger.warning(f"Player destroy failed: {type(e).__name__}: {e}")

    def _on_api_ready(self, factory: PlayerFactory) -> None:
        # The bootstrap is shared and may outlive this adapter.
        if self.state is LifecycleState.DESTROYED:
            logger.debug("Player API ready after dispose, ignoring")
            return

        self.state = LifecycleState.INITIALIZING
        logger.info(f"Initializing player '{self.container_id}'")

        options = PlayerOptions(
            on_ready=lambda player: self.dispatch(self._on_player_ready, player),
            on_state_change=lambda player, signal: self.dispatch(self._on_player_state_change, player, signal),
        )
        try:
            self.player = factory(self.container_id, options)
        except Exception as e:
            logger.error(f"Failed to create player: {type(e).__name__}: {e}")

    def _on_player_ready(self, player: ExternalPlayer) -> None:
        if self.state is not LifecycleState.INITIALIZING:
            return
        # Some players report ready before the factory call returns.
        if self.player is None:
            self.player = player

        try:
            self.volume = player.get_volume()
            self.is_muted = player.is_muted()
        except Exception as e:
            logger.error(f"Player ready callback failed: {type(e).__name__}: {e}")
            return

        self.state = LifecycleState.READY
        logger.info(f"Player ready (volume={self.volume}, muted={self.is_muted})")
        self._emit_status()

        session = self.session.session
        if session.current_item is not None:
            self._send("load_item_by_id", session.current_item.id)
            if not session.is_playing:
                self._send("pause")

    def _on_player_state_change(self, player: ExternalPlayer, signal: PlayerSignal) -> None:
        if self.state is LifecycleState.DESTROYED:
            return

        if signal is PlayerSignal.PLAYING:
            try:
                self.duration = player.get_duration()
            except Exception as e:
                logger.warning(f"Could not read duration: {type(e).__name__}: {e}")
            self._start_polling(player)
            self._emit_status()
        elif signal in (PlayerSignal.PAUSED, PlayerSignal.ENDED):
            self._stop_polling()

    # ------------------------------------------------------------------
    # Position polling

    def _start_polling(self, player: ExternalPlayer) -> None:
        self._stop_polling()

        def tick() -> None:
            try:
                current_time = player.get_current_time()
                # Duration can become known after playback has started
                duration = player.get_duration()
            except Exception as e:
                logger.debug(f"Position poll failed: {type(e).__name__}: {e}")
                return
            if (current_time, duration) == (self.current_time, self.duration):
                return
            self.current_time = current_time
            self.duration = duration
            self._emit_status()

        self._poll_timer = self.set_interval(POLL_INTERVAL, tick)

    def _stop_polling(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.stop()
            self._poll_timer = None

    # ------------------------------------------------------------------
    # Session reactions

    def _on_session_change(self, change: SessionChange) -> None:
        if not self.is_ready:
            return

        session = change.session
        if change.item_changed:
            if session.current_item is None:
                self._send("pause")
                return
            self._send("load_item_by_id", session.current_item.id)
            # Loading starts playback in the underlying player.
            if not session.is_playing:
                self._send("pause")
        elif change.playing_changed and session.current_item is not None:
            self._send("play" if session.is_playing else "pause")

    # ------------------------------------------------------------------
    # User commands

    def seek_to(self, seconds: float) -> None:
        if not self._ready_for("seek_to"):
            return
        self._send("seek_to", seconds, True)

    def set_volume(self, volume: int) -> None:
        """Set the volume (0-100); zero mutes, anything louder unmutes."""
        if not self._ready_for("set_volume"):
            return

        volume = max(0, min(int(volume), 100))
        self._send("set_volume", volume)
        self.volume = volume

        if volume == 0:
            self._send("mute")
            self.is_muted = True
        elif self.is_muted:
            self._send("un_mute")
            self.is_muted = False
        self._emit_status()

    def toggle_mute(self) -> None:
        if not self._ready_for("toggle_mute"):
            return

        if self.is_muted:
            self._send("un_mute")
            self.is_muted = False
        else:
            self._send("mute")
            self.is_muted = True
        self._emit_status()

    def _ready_for(self, command: str) -> bool:
        if self.is_ready and self.player is not None:
            return True
        logger.debug(f"Ignoring {command}: player is {self.state.value}")
        return False

    def _send(self, method: str, *args) -> None:
        """Invoke *method* on the player, logging instead of raising."""
        if self.player is None:
            return
        try:
            getattr(self.player, method)(*args)
            logger.debug(f"Player command {method}{args}")
        except Exception as e:
            logger.warning(f"Player command {method}{args} failed: {type(e).__name__}: {e}")

    def _emit_status(self) -> None:
        if self.on_status:
            self.on_status(self.status())
