"""Dual-handle time-range selector.

The selector turns pointer input into a start/end window and seek requests.
Interaction is modelled as a reducer: ``reduce`` takes the current drag state
and an event and returns the next state plus a list of effects. The
``TimeRangeSelector`` component runs the reducer and dispatches the effects to
its callbacks.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from .config import SelectorConfig


class DragMode(Enum):
    """What the pointer is currently dragging."""

    NONE = "none"
    START = "start"
    END = "end"
    SEEK = "seek"


class Target(Enum):
    """Where a pointer-down landed."""

    START_HANDLE = "start"
    END_HANDLE = "end"
    TRACK = "track"


@dataclass(frozen=True)
class SelectorProps:
    """Inputs owned by the parent: bounds, window and playhead."""
    min_value: float
    max_value: float
    start_time: float
    end_time: float
    current_position: Optional[float] = None


@dataclass(frozen=True)
class TrackGeometry:
    """Pixel position of the slider track."""
    left: float
    width: float


@dataclass(frozen=True)
class SelectorState:
    drag: DragMode = DragMode.NONE


# Events

@dataclass(frozen=True)
class PointerDown:
    target: Target
    x: float


@dataclass(frozen=True)
class PointerMove:
    x: float


@dataclass(frozen=True)
class PointerUp:
    pass


Event = Union[PointerDown, PointerMove, PointerUp]


# Effects

@dataclass(frozen=True)
class StartChanged:
    value: int


@dataclass(frozen=True)
class EndChanged:
    value: int


@dataclass(frozen=True)
class Seek:
    value: int


@dataclass(frozen=True)
class AttachGlobalListeners:
    pass


@dataclass(frozen=True)
class DetachGlobalListeners:
    pass


Effect = Union[StartChanged, EndChanged, Seek, AttachGlobalListeners, DetachGlobalListeners]


def value_from_position(x: float, geometry: TrackGeometry, min_value: float, max_value: float) -> int:
    """Map a pointer x coordinate onto ``[min_value, max_value]``, rounded to seconds."""
    if geometry.width <= 0:
        return int(round(min_value))
    fraction = max(0.0, min(1.0, (x - geometry.left) / geometry.width))
    return int(round(min_value + fraction * (max_value - min_value)))


def clamp_start(value: float, props: SelectorProps) -> int:
    """Start handle: stay one step below the end and not below the minimum."""
    limit = props.end_time - SelectorConfig.MIN_WINDOW_SECONDS
    return int(max(props.min_value, min(value, limit)))


def clamp_end(value: float, props: SelectorProps) -> int:
    """End handle: stay one step above the start and not above the maximum."""
    limit = props.start_time + SelectorConfig.MIN_WINDOW_SECONDS
    return int(min(props.max_value, max(value, limit)))


def percentage(value: float, props: SelectorProps) -> float:
    """Position of ``value`` along the track, in percent."""
    span = props.max_value - props.min_value
    if span <= 0:
        return 0.0
    return (value - props.min_value) / span * 100


def _drag_effect(drag: DragMode, value: int, props: SelectorProps) -> List[Effect]:
    if drag is DragMode.START:
        return [StartChanged(clamp_start(value, props))]
    if drag is DragMode.END:
        return [EndChanged(clamp_end(value, props))]
    if drag is DragMode.SEEK:
        return [Seek(value)]
    return []


def reduce(
    state: SelectorState,
    event: Event,
    props: SelectorProps,
    geometry: TrackGeometry,
) -> Tuple[SelectorState, List[Effect]]:
    """
    Advance the drag state machine by one event.

    Args:
        state: Current drag state
        event: Pointer event
        props: Bounds and window as currently rendered
        geometry: Track position in pixels

    Returns:
        Tuple of (next state, effects to perform in order)
    """
    effects: List[Effect] = []

    if isinstance(event, PointerDown):
        drag = {
            Target.START_HANDLE: DragMode.START,
            Target.END_HANDLE: DragMode.END,
            Target.TRACK: DragMode.SEEK,
        }[event.target]
        if state.drag is DragMode.NONE:
            effects.append(AttachGlobalListeners())
        if drag is DragMode.SEEK:
            value = value_from_position(event.x, geometry, props.min_value, props.max_value)
            effects.append(Seek(value))
        return replace(state, drag=drag), effects

    if isinstance(event, PointerMove):
        if state.drag is DragMode.NONE:
            return state, effects
        value = value_from_position(event.x, geometry, props.min_value, props.max_value)
        return state, _drag_effect(state.drag, value, props)

    if isinstance(event, PointerUp):
        if state.drag is DragMode.NONE:
            return state, effects
        return replace(state, drag=DragMode.NONE), [DetachGlobalListeners()]

    raise TypeError(f"Unknown selector event: {event!r}")


class TimeRangeSelector:
    """Stateful selector component wired to parent callbacks."""

    def __init__(
        self,
        props: SelectorProps,
        geometry: TrackGeometry,
        on_start_change: Callable[[int], None],
        on_end_change: Callable[[int], None],
        on_seek: Optional[Callable[[int], None]] = None,
    ):
        self.props = props
        self.geometry = geometry
        self.on_start_change = on_start_change
        self.on_end_change = on_end_change
        self.on_seek = on_seek
        self.state = SelectorState()
        self.global_listeners = 0

    @property
    def is_dragging(self) -> bool:
        return self.state.drag is not DragMode.NONE

    def update_props(self, **changes) -> None:
        """Re-render with new bounds, window or playhead."""
        self.props = replace(self.props, **changes)

    def handle(self, event: Event) -> List[Effect]:
        """Feed one pointer event through the reducer and perform its effects."""
        self.state, effects = reduce(self.state, event, self.props, self.geometry)
        for effect in effects:
            self._perform(effect)
        return effects

    def propose_start(self, value: float) -> int:
        """Move the start handle to ``value`` without a pointer (slider, keyboard)."""
        clamped = clamp_start(round(value), self.props)
        self._perform(StartChanged(clamped))
        return clamped

    def propose_end(self, value: float) -> int:
        """Move the end handle to ``value`` without a pointer (slider, keyboard)."""
        clamped = clamp_end(round(value), self.props)
        self._perform(EndChanged(clamped))
        return clamped

    def _perform(self, effect: Effect) -> None:
        if isinstance(effect, StartChanged):
            self.props = replace(self.props, start_time=effect.value)
            self.on_start_change(effect.value)
        elif isinstance(effect, EndChanged):
            self.props = replace(self.props, end_time=effect.value)
            self.on_end_change(effect.value)
        elif isinstance(effect, Seek):
            if self.on_seek is not None:
                self.on_seek(effect.value)
        elif isinstance(effect, AttachGlobalListeners):
            self.global_listeners += 1
        elif isinstance(effect, DetachGlobalListeners):
            self.global_listeners -= 1

    @property
    def duration_label(self) -> str:
        return format_clock(self.props.end_time - self.props.start_time)


def format_clock(seconds) -> str:
    """Label for a handle or duration: ``M:SS``, ``0:00`` for invalid input."""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return "0:00"
    if math.isnan(seconds) or math.isinf(seconds):
        return "0:00"
    seconds = max(0, seconds)
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
