"""Plotly figures for the clip timeline and the optional waveform."""

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import plotly.graph_objects as go

from .config import MediaConfig
from .logger import get_logger
from .selector import SelectorProps, format_clock

logger = get_logger(__name__)

TRACK_COLOR = 'rgba(255,255,255,0.1)'
WINDOW_COLOR = 'rgba(59,130,246,0.5)'
HANDLE_COLOR = '#3b82f6'
PLAYHEAD_COLOR = '#ffffff'


def _base_layout(fig: go.Figure, props: SelectorProps, height: int) -> None:
    fig.update_layout(
        xaxis=dict(
            range=[props.min_value, props.max_value],
            showgrid=False,
            zeroline=False,
            fixedrange=True,
            tickfont=dict(size=9),
        ),
        yaxis=dict(range=[-1, 1], visible=False, fixedrange=True),
        height=height,
        margin=dict(l=10, r=10, t=10, b=25),
        plot_bgcolor='rgba(0,0,0,0)',
        paper_bgcolor='rgba(0,0,0,0)',
        showlegend=False,
        hovermode=False,
        dragmode=False,
    )


def build_timeline_figure(props: SelectorProps, height: int = 90) -> go.Figure:
    """
    Draw the selector: full track, selected window, handles and playhead.

    Clicking a point on the chart reports its x value, which the page treats
    as a seek along the track.
    """
    fig = go.Figure()

    # Invisible points so clicks anywhere on the track report an x value
    xs = np.linspace(props.min_value, props.max_value, 200)
    fig.add_trace(go.Scatter(
        x=xs, y=np.zeros_like(xs),
        mode='markers',
        marker=dict(size=12, color='rgba(0,0,0,0)'),
        hoverinfo='none',
    ))

    fig.add_shape(type='rect', x0=props.min_value, x1=props.max_value, y0=-0.15, y1=0.15,
                  fillcolor=TRACK_COLOR, line=dict(width=0), layer='below')
    fig.add_shape(type='rect', x0=props.start_time, x1=props.end_time, y0=-0.15, y1=0.15,
                  fillcolor=WINDOW_COLOR, line=dict(width=0), layer='below')

    fig.add_trace(go.Scatter(
        x=[props.start_time, props.end_time], y=[0, 0],
        mode='markers+text',
        marker=dict(size=16, color=HANDLE_COLOR, line=dict(width=2, color='white')),
        text=[format_clock(props.start_time), format_clock(props.end_time)],
        textposition='top center',
        hoverinfo='none',
    ))

    if props.current_position is not None:
        fig.add_shape(type='line', x0=props.current_position, x1=props.current_position,
                      y0=-0.4, y1=0.4, line=dict(color=PLAYHEAD_COLOR, width=2))

    _base_layout(fig, props, height)
    return fig


@dataclass
class WaveformView:
    """A waveform figure, or a placeholder when audio is not available."""
    figure: go.Figure
    available: bool
    message: Optional[str] = None


def youtube_audio_extractor(source_url: str) -> np.ndarray:
    """Audio samples for a streamed video; not available client side."""
    raise NotImplementedError(MediaConfig.WAVEFORM_UNAVAILABLE_MESSAGE)


def envelope(samples: np.ndarray, points: int = MediaConfig.WAVEFORM_POINTS) -> np.ndarray:
    """Peak envelope of ``samples`` reduced to ``points`` buckets, normalised to 1."""
    samples = np.abs(np.asarray(samples, dtype=float).ravel())
    if samples.size == 0:
        return np.zeros(points)
    buckets = np.array_split(samples, min(points, samples.size))
    peaks = np.array([bucket.max() for bucket in buckets])
    top = peaks.max()
    return peaks / top if top > 0 else peaks


def _placeholder(start: float, end: float, message: str) -> WaveformView:
    props = SelectorProps(min_value=start, max_value=max(end, start + 1), start_time=start, end_time=end)
    fig = go.Figure()
    fig.add_shape(type='line', x0=props.min_value, x1=props.max_value, y0=0, y1=0,
                  line=dict(color=TRACK_COLOR, width=2, dash='dot'))
    _base_layout(fig, props, 70)
    return WaveformView(figure=fig, available=False, message=message)


def build_waveform(
    source_url: str,
    start: float,
    end: float,
    extractor: Callable[[str], np.ndarray] = youtube_audio_extractor,
) -> WaveformView:
    """
    Best-effort waveform for the selected window.

    Any failure to obtain or render audio degrades to a static placeholder;
    playback and selection never depend on it.
    """
    try:
        samples = extractor(source_url)
        peaks = envelope(samples)
    except Exception as e:
        message = str(e) or "Failed to initialize audio visualization"
        logger.info("Waveform unavailable for %s: %s", source_url, message)
        return _placeholder(start, end, message)

    props = SelectorProps(min_value=start, max_value=max(end, start + 1), start_time=start, end_time=end)
    xs = np.linspace(props.min_value, props.max_value, peaks.size)
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=np.concatenate([xs, xs[::-1]]),
        y=np.concatenate([peaks, -peaks[::-1]]),
        fill='toself',
        mode='lines',
        line=dict(color='#6366f1', width=1),
        fillcolor='rgba(79,74,133,0.8)',
        hoverinfo='none',
    ))
    _base_layout(fig, props, 70)
    return WaveformView(figure=fig, available=True)
