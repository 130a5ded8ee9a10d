"""Media transport abstraction and playback/selection sync.

Provides:
- MediaTransport: the playback controls the preview relies on
- SimulatedTransport: wall-clock playback for previews and tests
- SamplingLoop: cancellable fixed-interval position polling
- MediaSyncAdapter: keeps the selected window and the transport in step
"""

import math
import threading
from abc import ABC, abstractmethod
from enum import Enum
from time import monotonic
from typing import Callable, List, Optional

from .config import MediaConfig
from .exceptions import TransportError, TransportNotReady
from .logger import get_logger

logger = get_logger(__name__)


class TransportState(Enum):
    """State-change notifications emitted by a transport."""

    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"


class MediaTransport(ABC):
    """Abstract base class for media players.

    Implementations push discrete state changes to subscribers; the playback
    position has to be polled with get_current_time().
    """

    def __init__(self, start: float = 0, end: Optional[float] = None):
        """
        Args:
            start: Window start hint, honoured by transports that support it
            end: Window end hint, honoured by transports that support it
        """
        self.start_hint = start
        self.end_hint = end
        self._listeners: List[Callable[[TransportState], None]] = []

    def subscribe(self, listener: Callable[[TransportState], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[TransportState], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, state: TransportState) -> None:
        for listener in list(self._listeners):
            listener(state)

    @abstractmethod
    def play(self):
        pass

    @abstractmethod
    def pause(self):
        pass

    @abstractmethod
    def seek(self, seconds: float):
        pass

    @abstractmethod
    def get_current_time(self) -> float:
        """Current playback position in seconds.

        Raises:
            TransportNotReady: If the player cannot report a position yet
        """
        pass

    @abstractmethod
    def get_duration(self) -> float:
        pass


class SimulatedTransport(MediaTransport):
    """Wall-clock transport without real audio.

    Used where the embedded player cannot be driven from Python, and in tests.
    Position advances with the clock while playing and stops at the duration.
    """

    def __init__(self, duration: float = MediaConfig.DEFAULT_DURATION_SECONDS,
                 start: float = 0, end: Optional[float] = None,
                 clock: Callable[[], float] = monotonic):
        super().__init__(start, end)
        self.duration = float(duration)
        self.clock = clock
        self.ready = False
        self.playing = False
        self._offset = float(start)
        self._played_from = None

    def load(self):
        """Finish initialisation and announce readiness."""
        self.ready = True
        self.emit(TransportState.READY)

    def fail(self, reason: str = "playback error"):
        self.ready = False
        self.playing = False
        logger.error("Simulated transport failed: %s", reason)
        self.emit(TransportState.ERROR)

    def _position(self) -> float:
        if self.playing and self._played_from is not None:
            elapsed = self.clock() - self._played_from
            return min(self.duration, self._offset + elapsed)
        return self._offset

    def play(self):
        if not self.ready or self.playing:
            return
        self._played_from = self.clock()
        self.playing = True
        self.emit(TransportState.PLAYING)

    def pause(self):
        if not self.playing:
            return
        self._offset = self._position()
        self._played_from = None
        self.playing = False
        self.emit(TransportState.PAUSED)

    def seek(self, seconds: float):
        self._offset = max(0.0, min(self.duration, float(seconds)))
        if self.playing:
            self._played_from = self.clock()

    def get_current_time(self) -> float:
        if not self.ready:
            raise TransportNotReady("Transport is not ready")
        position = self._position()
        if self.playing and position >= self.duration:
            self._offset = self.duration
            self._played_from = None
            self.playing = False
            self.emit(TransportState.ENDED)
        return position

    def get_duration(self) -> float:
        return self.duration


class SamplingLoop:
    """Calls ``tick`` every ``interval`` seconds on a background thread.

    The loop owns a cancellation event; stop() sets it and joins the thread so
    no tick runs after stop() returns (unless called from the tick itself).
    """

    def __init__(self, tick: Callable[[], None],
                 interval: float = MediaConfig.SAMPLE_INTERVAL_SECONDS):
        self.tick = tick
        self.interval = interval
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def start(self):
        self._thread.start()

    def _run(self):
        while not self._cancelled.wait(self.interval):
            self.tick()

    def stop(self):
        self._cancelled.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=MediaConfig.LOOP_JOIN_TIMEOUT_SECONDS)

    @property
    def active(self) -> bool:
        return not self._cancelled.is_set()


class MediaSyncAdapter:
    """Binds a time-range selection to a media transport.

    - Publishes the sampled playback position to position listeners
    - Pauses playback once the position reaches the window end
    - Pulls the playhead back inside the window when the window moves
    - Clamps seek requests into the window
    """

    def __init__(self, transport: MediaTransport, start_time: float, end_time: float,
                 on_position: Optional[Callable[[float], None]] = None,
                 loop_factory: Callable[..., SamplingLoop] = SamplingLoop,
                 interval: float = MediaConfig.SAMPLE_INTERVAL_SECONDS):
        self.transport = transport
        self.start_time = start_time
        self.end_time = end_time
        self.on_position = on_position
        self.loop_factory = loop_factory
        self.interval = interval

        self.ready = False
        self.playing = False
        self.duration = 0.0
        self.current_time = 0.0
        self.last_error: Optional[TransportError] = None
        self._loop: Optional[SamplingLoop] = None
        self._lock = threading.RLock()

        transport.subscribe(self._on_state_change)

    # Transport notifications

    def _on_state_change(self, state: TransportState):
        if state is TransportState.READY:
            self._on_ready()
        elif state is TransportState.ERROR:
            self.last_error = TransportError("Media playback failed", state=state.value)
            logger.error("Transport error; preview disabled: %s", self.last_error)
            self.ready = False
            self.playing = False
            self.stop_sampling()
        else:
            self.playing = state is TransportState.PLAYING
            self._read_position()

    def _on_ready(self):
        self.ready = True
        self.last_error = None
        self.duration = self.transport.get_duration()
        self._read_position()
        self.start_sampling()

    def _read_position(self) -> Optional[float]:
        try:
            position = self.transport.get_current_time()
        except TransportNotReady:
            return None
        if not isinstance(position, (int, float)) or math.isnan(position) or math.isinf(position):
            return None
        self._publish(position)
        return position

    def _publish(self, position: float):
        self.current_time = position
        if self.on_position is not None:
            self.on_position(position)

    # Sampling loop

    def start_sampling(self):
        """Start the sampling loop, replacing any loop already running."""
        loop = self.loop_factory(self.sample, self.interval)
        with self._lock:
            previous, self._loop = self._loop, loop
            loop.start()
        # Joining happens outside the lock so the old loop's last tick can finish
        if previous is not None:
            previous.stop()
        logger.debug("Sampling loop started every %.3fs", self.interval)

    def stop_sampling(self):
        with self._lock:
            loop, self._loop = self._loop, None
        if loop is not None:
            loop.stop()

    @property
    def sampling(self) -> bool:
        return self._loop is not None and self._loop.active

    def sample(self):
        """One sampling step: publish the position and enforce the window end."""
        position = self._read_position()
        if position is None:
            return
        if position >= self.end_time:
            self.transport.pause()

    # Selector callbacks

    def on_start_change(self, new_start: float):
        self.start_time = new_start
        if self.ready and self.current_time < new_start:
            self.transport.seek(new_start)
            self._publish(new_start)

    def on_end_change(self, new_end: float):
        self.end_time = new_end
        if self.ready and self.current_time > new_end:
            self.transport.seek(new_end)
            self._publish(new_end)

    def on_seek(self, target: float):
        if not self.ready or not self.duration:
            return
        clamped = max(self.start_time, min(self.end_time, target))
        self.transport.seek(clamped)
        self._publish(clamped)

    def toggle_playback(self):
        if not self.ready:
            return
        if self.playing:
            self.transport.pause()
        else:
            self.transport.play()

    def close(self):
        """Tear down when the owning view is discarded."""
        self.stop_sampling()
        self.transport.unsubscribe(self._on_state_change)
        self.ready = False
