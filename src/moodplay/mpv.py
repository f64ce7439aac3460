"""mpv-backed implementation of the external player contract."""
import os
import json
import socket
import logging
import threading
import subprocess
from shutil import which
from typing import Any, Optional

from .player import PlayerApi, PlayerFactory, PlayerOptions, PlayerSignal

logger = logging.getLogger(__name__)

MPV_BINARY = os.environ.get("MOODPLAY_MPV") or "mpv"
WATCH_URL = "https://www.youtube.com/watch?v={}"

# Properties mirrored from mpv; observe_property ids are their index + 1
OBSERVED_PROPERTIES = ("pause", "time-pos", "duration", "volume", "mute")

# end-file reasons after which nothing is playing any more
ENDING_REASONS = ("eof", "error")


class MpvPlayer:
    """An idle mpv process controlled through a JSON IPC socketpair.

    mpv pushes property changes and events; getters answer from the
    mirrored values, so nothing blocks on a round trip.
    """

    def __init__(self, container_id: str, options: PlayerOptions, binary: str = MPV_BINARY):
        self.container_id = container_id
        self.options = options
        self.properties: dict[str, Any] = {}
        self._ready_fired = False
        self._file_loaded = False
        self._awaiting_end = False
        self._closed = False
        self._send_lock = threading.Lock()

        # Socketpair avoids a filesystem path for the IPC endpoint
        self._ipc_socket, mpv_socket = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
        mpv_fd = mpv_socket.fileno()
        cmd = [
            binary,
            "--idle=yes",
            "--no-video",
            "--audio-display=no",
            "--no-terminal",
            "--network-timeout=5",
            f"--title={container_id}",
            f"--pause={'no' if options.autoplay else 'yes'}",
            f"--input-ipc-client=fd://{mpv_fd}",
        ]
        logger.debug(f"Starting mpv: {' '.join(cmd)}")
        self.process = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            pass_fds=(mpv_fd,),
        )
        # mpv inherited its end
        mpv_socket.close()

        threading.Thread(target=self._read_events, daemon=True, name=f"mpv-{container_id}").start()
        for index, name in enumerate(OBSERVED_PROPERTIES, start=1):
            self._command("observe_property", index, name)

    # ------------------------------------------------------------------
    # Commands

    def load_item_by_id(self, item_id: str) -> None:
        self._file_loaded = False
        self._awaiting_end = True
        self._command("loadfile", WATCH_URL.format(item_id), "replace")
        # Loading always starts playback, whatever the previous pause state
        self._command("set_property", "pause", False)

    def play(self) -> None:
        self._command("set_property", "pause", False)

    def pause(self) -> None:
        self._command("set_property", "pause", True)

    def seek_to(self, seconds: float, allow_seek_ahead: bool = True) -> None:
        self._command("seek", seconds, "absolute" if allow_seek_ahead else "absolute+keyframes")

    def set_volume(self, volume: int) -> None:
        self._command("set_property", "volume", volume)

    def get_volume(self) -> int:
        return int(self.properties.get("volume") or 0)

    def mute(self) -> None:
        self._command("set_property", "mute", True)

    def un_mute(self) -> None:
        self._command("set_property", "mute", False)

    def is_muted(self) -> bool:
        return bool(self.properties.get("mute"))

    def get_current_time(self) -> float:
        return float(self.properties.get("time-pos") or 0.0)

    def get_duration(self) -> float:
        return float(self.properties.get("duration") or 0.0)

    def destroy(self) -> None:
        """Quit mpv and close the IPC channel."""
        if self._closed:
            return
        self._closed = True
        self._command("quit", force=True)

        self.process.terminate()
        try:
            self.process.wait(timeout=2)
        except subprocess.TimeoutExpired:
            self.process.kill()

        try:
            self._ipc_socket.close()
        except OSError:
            pass
        logger.info(f"mpv '{self.container_id}' destroyed")

    def _command(self, *command, force: bool = False) -> None:
        if self._closed and not force:
            logger.debug(f"Dropping mpv command {command}: player destroyed")
            return
        payload = json.dumps({"command": list(command)}) + "\n"
        try:
            with self._send_lock:
                self._ipc_socket.sendall(payload.encode("utf-8"))
        except (socket.error, BrokenPipeError) as e:
            logger.warning(f"Failed to send mpv command {command}: {e}")

    # ------------------------------------------------------------------
    # Events

    def _read_events(self) -> None:
        buffer = b""
        while not self._closed:
            try:
                chunk = self._ipc_socket.recv(4096)
            except OSError:
                break
            if not chunk:
                break

            buffer += chunk
            while b"\n" in buffer:
                line, buffer = buffer.split(b"\n", 1)
                if line.strip():
                    self._handle_line(line)

        logger.debug(f"mpv '{self.container_id}' event reader stopped")

    def _handle_line(self, line: bytes) -> None:
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            logger.warning(f"Unparseable mpv message: {line[:200]!r}")
            return

        event = message.get("event")
        if event is None:
            if message.get("error") not in (None, "success"):
                logger.debug(f"mpv reply: {message}")
            return

        try:
            self._handle_event(event, message)
        except Exception as e:
            logger.error(f"mpv event handler failed for {event}: {type(e).__name__}: {e}")

    def _handle_event(self, event: str, message: dict) -> None:
        if event == "property-change":
            name = message.get("name")
            value = message.get("data")
            self.properties[name] = value

            if name == "pause" and self._file_loaded:
                self._signal(PlayerSignal.PAUSED if value else PlayerSignal.PLAYING)
            elif name in ("volume", "mute"):
                self._maybe_ready()
        elif event == "file-loaded":
            self._file_loaded = True
        elif event == "playback-restart":
            if self._file_loaded and not self.properties.get("pause"):
                self._signal(PlayerSignal.PLAYING)
        elif event == "end-file":
            self._file_loaded = False
            reason = message.get("reason")
            # "stop" and "redirect" mean the file was replaced
            if reason in ENDING_REASONS:
                self._awaiting_end = False
                if reason == "error":
                    logger.warning(f"mpv '{self.container_id}' failed to play: {message.get('file_error', 'unknown error')}")
                self._signal(PlayerSignal.ENDED)
        elif event == "idle":
            # A load that went idle without an end-file of its own
            if self._awaiting_end and not self._file_loaded:
                self._awaiting_end = False
                self._signal(PlayerSignal.ENDED)

    def _maybe_ready(self) -> None:
        if self._ready_fired:
            return
        if "volume" in self.properties and "mute" in self.properties:
            self._ready_fired = True
            logger.info(f"mpv '{self.container_id}' ready")
            self.options.on_ready(self)

    def _signal(self, signal: PlayerSignal) -> None:
        logger.debug(f"mpv '{self.container_id}' -> {signal.value}")
        self.options.on_state_change(self, signal)


def load_mpv(binary: str = MPV_BINARY) -> PlayerFactory:
    """Locate mpv and confirm it runs.

    Returns:
        A factory creating :class:`MpvPlayer` instances

    Raises:
        FileNotFoundError: mpv is not installed
        RuntimeError: mpv is installed but does not start
    """
    path = which(binary)
    if path is None:
        raise FileNotFoundError(f"{binary} not found on PATH")

    try:
        result = subprocess.run([path, "--version"], capture_output=True, text=True, timeout=10)
    except subprocess.TimeoutExpired:
        raise RuntimeError("mpv --version timed out")
    if result.returncode != 0:
        raise RuntimeError(f"mpv --version failed: {result.stderr.strip()}")

    logger.info(f"Using {result.stdout.splitlines()[0] if result.stdout else path}")

    def create(container_id: str, options: PlayerOptions) -> MpvPlayer:
        return MpvPlayer(container_id, options, binary=path)

    return create


_player_api: Optional[PlayerApi] = None


def get_player_api() -> PlayerApi:
    """Return the process-wide mpv API handle."""
    global _player_api
    if _player_api is None:
        _player_api = PlayerApi(load_mpv)
    return _player_api
