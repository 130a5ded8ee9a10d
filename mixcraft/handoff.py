"""Short-lived snapshot of the last submission for the success view."""

import json
import time
from typing import Optional, Sequence

from .config import HandoffConfig
from .logger import get_logger
from .models import SongEntry, TransitionNote, transition_key

logger = get_logger(__name__)


def build_handoff(
    submission_id: str,
    name: str,
    email: str,
    reason: str,
    songs: Sequence[SongEntry],
    transitions: Sequence[TransitionNote],
    now: float = None,
) -> dict:
    """Snapshot of a just-completed submission, valid for a few minutes."""
    now = time.time() if now is None else now
    return {
        'submission_id': submission_id,
        'name': name.strip(),
        'email': email.strip(),
        'reason': reason.strip(),
        'songs': [song.to_dict() for song in songs],
        'transitions': [note.to_dict() for note in transitions],
        'expires_at': now + HandoffConfig.MAX_AGE_SECONDS,
    }


def dump_handoff(snapshot: dict) -> str:
    return json.dumps(snapshot, ensure_ascii=False)


def load_handoff(raw: Optional[str], now: float = None) -> Optional[dict]:
    """
    Read a snapshot back.

    Returns:
        The snapshot, or None when it is missing, malformed or expired
    """
    if not raw:
        return None
    try:
        snapshot = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed submission snapshot")
        return None
    if not isinstance(snapshot, dict) or 'submission_id' not in snapshot:
        return None

    now = time.time() if now is None else now
    expires_at = snapshot.get('expires_at')
    if not isinstance(expires_at, (int, float)) or expires_at <= now:
        return None
    snapshot.setdefault('songs', [])
    snapshot.setdefault('transitions', [])
    return snapshot


def transition_after(snapshot: dict, index: int) -> Optional[str]:
    """Content of the note leading out of song ``index``, if any."""
    songs = snapshot.get('songs', [])
    if index + 1 >= len(songs):
        return None
    key = transition_key(str(songs[index + 1].get('id')))
    for note in snapshot.get('transitions', []):
        if note.get('id') == key and note.get('content'):
            return note['content']
    return None
