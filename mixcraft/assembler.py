"""Assemble form state into a submission record and handle form submits."""

import json
import math
import re
from typing import Dict, List, Optional, Sequence

from .exceptions import SerializationError, StorageError, ValidationError
from .logger import get_logger
from .models import (
    MixForm, MixSong, SongEntry, SubmissionRecord, SubmitResult, TransitionNote,
)

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def transitions_by_next_song(transitions: Sequence[TransitionNote]) -> Dict[str, str]:
    """
    Map each transition note to the id of the song it leads into.

    Later notes with the same key replace earlier ones. Notes whose id does not
    carry the transition prefix are ignored.
    """
    mapping: Dict[str, str] = {}
    for note in transitions:
        next_song_id = note.next_song_id
        if next_song_id is None:
            logger.debug("Ignoring transition note with unexpected id %r", note.id)
            continue
        mapping[next_song_id] = note.content
    return mapping


def validate_contact(name: Optional[str], email: Optional[str], reason: Optional[str]) -> Dict[str, str]:
    """Check the contact fields and return per-field messages."""
    errors = {}
    if not (name or '').strip():
        errors['name'] = "Name is required."
    if not (email or '').strip():
        errors['email'] = "Email is required."
    elif not EMAIL_PATTERN.match(email.strip()):
        errors['email'] = "Please enter a valid email address."
    if not (reason or '').strip():
        errors['reason'] = "Please tell us the reason for the mix."
    return errors


def build_submission(
    name: str,
    email: str,
    reason: str,
    songs: Sequence[SongEntry],
    transitions: Sequence[TransitionNote],
) -> SubmissionRecord:
    """
    Build the submission record from the form's songs and transition notes.

    The note keyed to song ``i + 1`` describes the move out of song ``i`` and
    is stored as song ``i``'s transition notes. The last song has none.

    Raises:
        ValidationError: If contact fields are missing or there are no songs
    """
    errors = validate_contact(name, email, reason)
    if not songs:
        errors['songs'] = "Please add at least one song."
    if errors:
        raise ValidationError("Please fix the errors below.", field_errors=errors)

    notes = transitions_by_next_song(transitions)
    mix_songs = []
    for index, song in enumerate(songs):
        next_song = songs[index + 1] if index + 1 < len(songs) else None
        transition_notes = notes.get(next_song.id, "") if next_song is not None else ""
        mix_songs.append(MixSong(
            source_url=song.source_url,
            start_time=song.start_time,
            end_time=song.end_time,
            song_notes=song.notes,
            transition_notes=transition_notes,
        ))

    return SubmissionRecord(
        name=name.strip(),
        email=email.strip(),
        purpose=reason.strip(),
        songs=tuple(mix_songs),
    )


def _load_list(raw: Optional[str], field: str) -> List[dict]:
    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid {field} data.", field=field, details=str(e))
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise SerializationError(f"Invalid {field} data.", field=field, details="expected a list of objects")
    return data


def _number(value, default: float) -> float:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    result = float(value)
    if not math.isfinite(result):
        raise ValueError(f"not a finite number: {value!r}")
    return result


def parse_songs(raw: Optional[str]) -> List[SongEntry]:
    """
    Decode the serialized song list posted by the form.

    Raises:
        SerializationError: If the payload is not a list of song objects
    """
    songs = []
    for item in _load_list(raw, 'song'):
        try:
            songs.append(SongEntry(
                id=str(item['id']),
                source_url=str(item.get('youtubeUrl', item.get('source_url', '')) or ''),
                start_time=_number(item.get('startTime', item.get('start_time')), 0),
                end_time=_number(item.get('endTime', item.get('end_time')), 0),
                notes=str(item.get('notes', '') or ''),
                show_waveform=bool(item.get('showWaveform', item.get('show_waveform', False))),
                is_expanded=bool(item.get('isExpanded', item.get('is_expanded', True))),
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError("Invalid song data.", field='song', details=str(e))
    return songs


def parse_transitions(raw: Optional[str]) -> List[TransitionNote]:
    """
    Decode the serialized transition list posted by the form.

    Raises:
        SerializationError: If the payload is not a list of note objects
    """
    notes = []
    for item in _load_list(raw, 'transition'):
        try:
            notes.append(TransitionNote(id=str(item['id']), content=str(item.get('content', '') or '')))
        except (KeyError, TypeError) as e:
            raise SerializationError("Invalid transition data.", field='transition', details=str(e))
    return notes


def submit_mix(form: MixForm, storage) -> SubmitResult:
    """
    Validate a posted form and append it to storage.

    Args:
        form: Raw form fields
        storage: A SubmissionStorage-like object with ``save_submission``

    Returns:
        SubmitResult with field errors, or the new submission id
    """
    errors = validate_contact(form.name, form.email, form.reason)

    songs: List[SongEntry] = []
    transitions: List[TransitionNote] = []
    try:
        songs = parse_songs(form.songs)
    except SerializationError as e:
        logger.info("Rejected song payload: %s", e)
        errors['songs'] = e.message
    try:
        transitions = parse_transitions(form.transitions)
    except SerializationError as e:
        logger.info("Rejected transition payload: %s", e)
        errors['transitions'] = e.message

    if not songs and 'songs' not in errors:
        errors['songs'] = "Please add at least one song."

    if errors:
        return SubmitResult(success=False, message="Please fix the errors below.", field_errors=errors)

    try:
        record = build_submission(form.name, form.email, form.reason, songs, transitions)
    except ValidationError as e:
        return SubmitResult(success=False, message=e.message, field_errors=e.field_errors)

    try:
        submission_id = storage.save_submission(record)
    except StorageError as e:
        logger.error("Submission not saved: %s", e)
        return SubmitResult(success=False, message=e.message)

    logger.info("Stored submission %s with %d songs", submission_id, len(record.songs))
    return SubmitResult(success=True, message="Your mix has been submitted!", submission_id=submission_id)
