import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mixcraft.models import SongEntry, TransitionNote  # noqa: E402


@pytest.fixture
def three_songs():
    return [
        SongEntry(id="A", source_url="https://youtu.be/aaaaaaaaaaa", start_time=0, end_time=30, notes="open"),
        SongEntry(id="B", source_url="https://youtu.be/bbbbbbbbbbb", start_time=45, end_time=90, notes=""),
        SongEntry(id="C", source_url="https://youtu.be/ccccccccccc", start_time=3600, end_time=3725, notes="close"),
    ]


@pytest.fixture
def three_transitions():
    return [
        TransitionNote(id="transition-B", content="fade"),
        TransitionNote(id="transition-C", content="cut"),
    ]
