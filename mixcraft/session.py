"""Song and transition lists for one form session."""

import json
import uuid
from dataclasses import fields
from typing import List, Optional

from .config import SelectorConfig
from .models import SongEntry, TransitionNote, transition_key


def new_song_id() -> str:
    return uuid.uuid4().hex


class MixDraft:
    """
    The editable mix: an ordered song list plus transition notes.

    Every song after the first gets a transition note keyed to its own id,
    describing the move into it from the song before.
    """

    def __init__(self, songs: List[SongEntry] = None, transitions: List[TransitionNote] = None):
        self.songs: List[SongEntry] = list(songs or [])
        self.transitions: List[TransitionNote] = list(transitions or [])

    @classmethod
    def start(cls) -> "MixDraft":
        """A draft holding the first, empty song."""
        draft = cls()
        draft.add_song()
        return draft

    def add_song(self) -> SongEntry:
        song = SongEntry(
            id=new_song_id(),
            start_time=SelectorConfig.DEFAULT_START_TIME,
            end_time=SelectorConfig.DEFAULT_END_TIME,
        )
        if self.songs:
            self.transitions.append(TransitionNote(id=transition_key(song.id)))
        self.songs.append(song)
        return song

    def remove_song(self, song_id: str) -> None:
        # Removing a middle song leaves the next song's note in place; it now
        # describes the move from the song before the removed one.
        self.songs = [song for song in self.songs if song.id != song_id]
        key = transition_key(song_id)
        self.transitions = [note for note in self.transitions if note.id != key]

    def get_song(self, song_id: str) -> Optional[SongEntry]:
        for song in self.songs:
            if song.id == song_id:
                return song
        return None

    def update_song(self, song_id: str, **changes) -> SongEntry:
        """Update fields of one song in place."""
        song = self.get_song(song_id)
        if song is None:
            raise KeyError(song_id)
        allowed = {f.name for f in fields(SongEntry)} - {'id'}
        unknown = set(changes) - allowed
        if unknown:
            raise TypeError(f"Unknown song fields: {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(song, name, value)
        return song

    def set_transition(self, next_song_id: str, content: str) -> TransitionNote:
        key = transition_key(next_song_id)
        for note in self.transitions:
            if note.id == key:
                note.content = content
                return note
        note = TransitionNote(id=key, content=content)
        self.transitions.append(note)
        return note

    def transition_before(self, index: int) -> Optional[TransitionNote]:
        """The note shown between song ``index - 1`` and song ``index``."""
        if index <= 0 or index >= len(self.songs):
            return None
        key = transition_key(self.songs[index].id)
        for note in self.transitions:
            if note.id == key:
                return note
        return None

    def songs_json(self) -> str:
        return json.dumps([song.to_dict() for song in self.songs])

    def transitions_json(self) -> str:
        return json.dumps([note.to_dict() for note in self.transitions])
