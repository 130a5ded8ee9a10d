"""Conversion between submission records and flat spreadsheet rows."""

from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .logger import get_logger
from .models import MixSong, StoredSubmission, SubmissionRecord

logger = get_logger(__name__)

# Column order is part of the stored format; reordering breaks existing sheets.
COLUMNS = [
    'submission_id', 'timestamp', 'name', 'email', 'purpose', 'song_number',
    'youtube_url', 'start_time', 'end_time', 'song_notes', 'transition_notes',
]
COL = {name: index for index, name in enumerate(COLUMNS)}


def format_time(seconds: float) -> str:
    """
    Format seconds as ``H:MM:SS`` when there are hours, else ``M:SS``.

    Fractional seconds are floored and negative input is treated as zero.
    """
    total = int(max(0, seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_time(text: str) -> int:
    """
    Parse ``H:MM:SS`` or ``M:SS`` back to whole seconds.

    A value without a colon is read as plain seconds.

    Raises:
        ValueError: If the text is not a time value
    """
    parts = str(text).strip().split(':')
    if len(parts) > 3 or any(not part.strip().isdigit() for part in parts):
        raise ValueError(f"Invalid time value: {text!r}")

    numbers = [int(part) for part in parts]
    if len(numbers) == 3:
        hours, minutes, secs = numbers
    elif len(numbers) == 2:
        hours = 0
        minutes, secs = numbers
    else:
        hours, minutes = 0, 0
        secs = numbers[0]
    return hours * 3600 + minutes * 60 + secs


def encode_rows(
    record: SubmissionRecord, submission_id: str, timestamp: str
) -> List[List[Any]]:
    """
    Flatten a submission into one row per song.

    Args:
        record: The submission to store
        submission_id: Identifier shared by all rows of the submission
        timestamp: ISO-8601 submission time

    Returns:
        Rows in ``COLUMNS`` order with a 1-based song number
    """
    rows = []
    for number, song in enumerate(record.songs, start=1):
        rows.append([
            submission_id,
            timestamp,
            record.name,
            record.email,
            record.purpose,
            number,
            song.source_url,
            format_time(song.start_time),
            format_time(song.end_time),
            song.song_notes,
            song.transition_notes,
        ])
    return rows


def _cell(row: Sequence[Any], column: str, default: str = "") -> str:
    index = COL[column]
    if index >= len(row) or row[index] is None:
        return default
    return str(row[index])


def _song_number(row: Sequence[Any]) -> int:
    try:
        return int(float(_cell(row, 'song_number', '0')))
    except (ValueError, OverflowError):
        return 0


def _time_cell(row: Sequence[Any], column: str) -> int:
    text = _cell(row, column, '0:00') or '0:00'
    try:
        return parse_time(text)
    except ValueError:
        logger.warning(
            "Unparseable %s %r in submission %s; using 0",
            column, text, _cell(row, 'submission_id'),
        )
        return 0


def parse_timestamp(text: str) -> Optional[datetime]:
    """Parse a stored ISO-8601 timestamp, or return None."""
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        logger.warning("Unparseable timestamp %r", text)
        return None


def decode_submission(rows: Sequence[Sequence[Any]]) -> StoredSubmission:
    """
    Rebuild one submission from all of its rows.

    Rows are ordered by song number; the contact fields and timestamp come
    from the first row after sorting.

    Raises:
        ValueError: If no rows are given
    """
    if not rows:
        raise ValueError("Cannot decode a submission from zero rows")

    ordered = sorted(rows, key=_song_number)
    first = ordered[0]
    songs = tuple(
        MixSong(
            source_url=_cell(row, 'youtube_url'),
            start_time=_time_cell(row, 'start_time'),
            end_time=_time_cell(row, 'end_time'),
            song_notes=_cell(row, 'song_notes'),
            transition_notes=_cell(row, 'transition_notes'),
        )
        for row in ordered
    )

    return StoredSubmission(
        submission_id=_cell(first, 'submission_id'),
        timestamp=parse_timestamp(_cell(first, 'timestamp')),
        name=_cell(first, 'name'),
        email=_cell(first, 'email'),
        purpose=_cell(first, 'purpose'),
        songs=songs,
    )


def _sort_key(submission: StoredSubmission) -> float:
    if submission.timestamp is None:
        return float('-inf')
    try:
        return submission.timestamp.timestamp()
    except (OverflowError, OSError, ValueError):
        return float('-inf')


def group_rows(rows: Sequence[Sequence[Any]]) -> Dict[str, List[Sequence[Any]]]:
    """Group rows by submission id, keeping first-seen order."""
    grouped: Dict[str, List[Sequence[Any]]] = OrderedDict()
    for row in rows:
        submission_id = _cell(row, 'submission_id')
        if not submission_id:
            continue
        grouped.setdefault(submission_id, []).append(row)
    return grouped


def decode_listing(rows: Sequence[Sequence[Any]]) -> List[StoredSubmission]:
    """Decode every submission in an unordered row set, newest first."""
    submissions = [decode_submission(group) for group in group_rows(rows).values()]
    submissions.sort(key=_sort_key, reverse=True)
    return submissions
