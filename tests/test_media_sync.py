"""Unit tests for the media sync adapter and sampling loop."""

import threading
import time

import pytest

from mixcraft.exceptions import TransportNotReady
from mixcraft.media_sync import (
    MediaSyncAdapter, MediaTransport, SamplingLoop, SimulatedTransport, TransportState,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ManualLoop:
    """Sampling loop driven by the test instead of a thread."""

    instances = []

    def __init__(self, tick, interval):
        self.tick = tick
        self.interval = interval
        self.started = False
        self.stopped = False
        ManualLoop.instances.append(self)

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    @property
    def active(self):
        return self.started and not self.stopped


class RecordingTransport(MediaTransport):
    def __init__(self, position=0.0, duration=200.0):
        super().__init__()
        self.position = position
        self.duration = duration
        self.calls = []
        self.fail_reads = 0

    def play(self):
        self.calls.append(('play',))

    def pause(self):
        self.calls.append(('pause',))

    def seek(self, seconds):
        self.calls.append(('seek', seconds))
        self.position = seconds

    def get_current_time(self):
        if self.fail_reads:
            self.fail_reads -= 1
            raise TransportNotReady("not yet")
        return self.position

    def get_duration(self):
        return self.duration


@pytest.fixture(autouse=True)
def _reset_loops():
    ManualLoop.instances = []
    yield


def _adapter(transport, start=10, end=40, positions=None):
    return MediaSyncAdapter(
        transport, start, end,
        on_position=positions.append if positions is not None else None,
        loop_factory=ManualLoop,
    )


def test_ready_records_duration_position_and_starts_loop() -> None:
    transport = RecordingTransport(position=12.5, duration=215.0)
    positions = []
    adapter = _adapter(transport, positions=positions)

    transport.emit(TransportState.READY)

    assert adapter.ready
    assert adapter.duration == 215.0
    assert adapter.current_time == 12.5
    assert positions == [12.5]
    assert len(ManualLoop.instances) == 1
    assert adapter.sampling


def test_sample_publishes_position_while_paused() -> None:
    transport = RecordingTransport(position=15)
    positions = []
    adapter = _adapter(transport, positions=positions)
    transport.emit(TransportState.READY)

    transport.position = 16
    adapter.sample()
    transport.position = 17
    adapter.sample()

    assert positions[-2:] == [16, 17]
    assert ('pause',) not in transport.calls


def test_sample_pauses_at_window_end() -> None:
    transport = RecordingTransport(position=20)
    adapter = _adapter(transport, end=40)
    transport.emit(TransportState.READY)

    transport.position = 40
    adapter.sample()

    assert transport.calls == [('pause',)]


def test_sample_ignores_transient_read_failures() -> None:
    transport = RecordingTransport(position=20)
    positions = []
    adapter = _adapter(transport, positions=positions)
    transport.emit(TransportState.READY)

    transport.fail_reads = 1
    adapter.sample()
    transport.position = float('nan')
    adapter.sample()

    assert positions == [20]
    assert adapter.current_time == 20


def test_reducing_end_below_playhead_pauses_within_one_sample() -> None:
    clock = FakeClock()
    transport = SimulatedTransport(duration=300, clock=clock)
    adapter = MediaSyncAdapter(transport, 0, 120, loop_factory=ManualLoop)
    transport.load()
    adapter.toggle_playback()
    assert transport.playing

    clock.advance(60)
    adapter.sample()
    assert transport.playing

    # Window end moved under a playing transport without going through the selector
    adapter.end_time = 30
    clock.advance(0.1)
    adapter.sample()

    assert not transport.playing


def test_start_change_pulls_playhead_forward() -> None:
    transport = RecordingTransport(position=12)
    positions = []
    adapter = _adapter(transport, start=10, end=40, positions=positions)
    transport.emit(TransportState.READY)

    adapter.on_start_change(20)

    assert transport.calls == [('seek', 20)]
    assert adapter.current_time == 20
    assert positions[-1] == 20


def test_end_change_pulls_playhead_back() -> None:
    transport = RecordingTransport(position=35)
    adapter = _adapter(transport, start=10, end=40)
    transport.emit(TransportState.READY)

    adapter.on_end_change(30)

    assert transport.calls == [('seek', 30)]
    assert adapter.current_time == 30


def test_window_change_inside_playhead_does_not_seek() -> None:
    transport = RecordingTransport(position=25)
    adapter = _adapter(transport, start=10, end=40)
    transport.emit(TransportState.READY)

    adapter.on_start_change(15)
    adapter.on_end_change(35)

    assert transport.calls == []
    assert (adapter.start_time, adapter.end_time) == (15, 35)


def test_seek_is_clamped_into_window() -> None:
    transport = RecordingTransport(position=25)
    adapter = _adapter(transport, start=10, end=40)
    transport.emit(TransportState.READY)

    adapter.on_seek(5)
    adapter.on_seek(90)
    adapter.on_seek(22)

    assert transport.calls == [('seek', 10), ('seek', 40), ('seek', 22)]


def test_seek_before_ready_is_ignored() -> None:
    transport = RecordingTransport()
    adapter = _adapter(transport)

    adapter.on_seek(20)
    adapter.toggle_playback()

    assert transport.calls == []


def test_second_ready_replaces_existing_loop() -> None:
    transport = RecordingTransport()
    _adapter(transport)

    transport.emit(TransportState.READY)
    transport.emit(TransportState.READY)

    first, second = ManualLoop.instances
    assert first.stopped
    assert second.active


class FinalTickLoop(ManualLoop):
    """Runs one last tick on its own thread while being stopped, as a threaded loop may."""

    def __init__(self, tick, interval):
        super().__init__(tick, interval)
        self.final_tick_finished = None

    def stop(self):
        if self.started and self.final_tick_finished is None:
            worker = threading.Thread(target=self.tick)
            worker.start()
            worker.join(timeout=1.0)
            self.final_tick_finished = not worker.is_alive()
        super().stop()


def test_replacing_loop_does_not_block_the_old_loops_last_tick() -> None:
    transport = RecordingTransport()
    adapter = MediaSyncAdapter(transport, 10, 40, loop_factory=FinalTickLoop)
    # Each tick hits a transport error, which stops sampling
    adapter.sample = lambda: transport.emit(TransportState.ERROR)
    adapter.start_sampling()
    first = ManualLoop.instances[0]

    adapter.start_sampling()

    assert first.final_tick_finished
    assert first.stopped
    assert adapter.last_error is not None


def test_error_stops_loop_and_is_recorded() -> None:
    transport = RecordingTransport()
    adapter = _adapter(transport)
    transport.emit(TransportState.READY)

    transport.emit(TransportState.ERROR)

    assert not adapter.ready
    assert not adapter.sampling
    assert adapter.last_error is not None
    assert adapter.last_error.state == "error"


def test_close_stops_loop_and_unsubscribes() -> None:
    transport = RecordingTransport()
    adapter = _adapter(transport)
    transport.emit(TransportState.READY)

    adapter.close()
    transport.emit(TransportState.READY)

    assert len(ManualLoop.instances) == 1
    assert ManualLoop.instances[0].stopped


def test_playing_state_follows_notifications() -> None:
    transport = RecordingTransport()
    adapter = _adapter(transport)
    transport.emit(TransportState.READY)

    transport.emit(TransportState.PLAYING)
    assert adapter.playing
    adapter.toggle_playback()
    transport.emit(TransportState.PAUSED)
    assert not adapter.playing
    adapter.toggle_playback()

    assert transport.calls == [('pause',), ('play',)]


def test_simulated_transport_tracks_clock_and_seeks() -> None:
    clock = FakeClock()
    transport = SimulatedTransport(duration=100, clock=clock)

    with pytest.raises(TransportNotReady):
        transport.get_current_time()

    transport.load()
    transport.play()
    clock.advance(5)
    assert transport.get_current_time() == 5
    transport.seek(50)
    clock.advance(2)
    assert transport.get_current_time() == 52
    transport.pause()
    clock.advance(10)
    assert transport.get_current_time() == 52


def test_simulated_transport_ends_at_duration() -> None:
    clock = FakeClock()
    transport = SimulatedTransport(duration=10, clock=clock)
    states = []
    transport.subscribe(states.append)
    transport.load()
    transport.play()

    clock.advance(30)

    assert transport.get_current_time() == 10
    assert not transport.playing
    assert states == [TransportState.READY, TransportState.PLAYING, TransportState.ENDED]


def test_sampling_loop_ticks_until_stopped() -> None:
    ticks = []
    ticked = threading.Event()

    def tick():
        ticks.append(time.monotonic())
        if len(ticks) >= 3:
            ticked.set()

    loop = SamplingLoop(tick, interval=0.01)
    loop.start()
    assert ticked.wait(2.0)
    loop.stop()
    count = len(ticks)
    time.sleep(0.05)

    assert not loop.active
    assert len(ticks) == count


def test_threaded_loop_pauses_playback_at_window_end() -> None:
    transport = SimulatedTransport(duration=300, start=0)
    paused = threading.Event()
    transport.subscribe(lambda state: state is TransportState.PAUSED and paused.set())
    adapter = MediaSyncAdapter(transport, 0, 0.05, interval=0.01)

    transport.load()
    transport.play()
    try:
        assert paused.wait(2.0)
    finally:
        adapter.close()

    assert not adapter.sampling
