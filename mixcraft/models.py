"""Data models for the mix request application."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple

from .config import SelectorConfig

TRANSITION_PREFIX = "transition-"


def transition_key(next_song_id: str) -> str:
    """Key of the transition note leading into ``next_song_id``."""
    return f"{TRANSITION_PREFIX}{next_song_id}"


@dataclass
class SongEntry:
    """A song clip as edited on the form."""
    id: str
    source_url: str = ""
    start_time: float = SelectorConfig.DEFAULT_START_TIME
    end_time: float = SelectorConfig.DEFAULT_END_TIME
    notes: str = ""
    show_waveform: bool = False
    is_expanded: bool = True

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'youtubeUrl': self.source_url,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'notes': self.notes,
            'showWaveform': self.show_waveform,
            'isExpanded': self.is_expanded,
        }


@dataclass
class TransitionNote:
    """Free-text note describing the move into the song it is keyed to."""
    id: str
    content: str = ""

    @property
    def next_song_id(self) -> Optional[str]:
        if self.id.startswith(TRANSITION_PREFIX):
            return self.id[len(TRANSITION_PREFIX):]
        return None

    def to_dict(self) -> dict:
        return {'id': self.id, 'content': self.content}


@dataclass(frozen=True)
class MixSong:
    """One song of a submitted mix."""
    source_url: str
    start_time: float  # seconds
    end_time: float  # seconds
    song_notes: str
    transition_notes: str  # empty for the last song


@dataclass(frozen=True)
class SubmissionRecord:
    """Immutable snapshot of a mix request, built at submission time."""
    name: str
    email: str
    purpose: str
    songs: Tuple[MixSong, ...]


@dataclass(frozen=True)
class StoredSubmission:
    """A submission read back from the row store."""
    submission_id: str
    timestamp: Optional[datetime]
    name: str
    email: str
    purpose: str
    songs: Tuple[MixSong, ...]

    @property
    def record(self) -> SubmissionRecord:
        return SubmissionRecord(
            name=self.name, email=self.email, purpose=self.purpose, songs=self.songs
        )


@dataclass
class SubmitResult:
    """Outcome of a form submission."""
    success: bool
    message: str
    field_errors: Dict[str, str] = None
    submission_id: Optional[str] = None

    def __post_init__(self):
        if self.field_errors is None:
            self.field_errors = {}


@dataclass
class MixForm:
    """Raw form fields as posted by the page."""
    name: Optional[str] = None
    email: Optional[str] = None
    reason: Optional[str] = None
    songs: Optional[str] = None  # JSON list of songs
    transitions: Optional[str] = None  # JSON list of transition notes
