"""Unit tests for time formatting and row encoding/decoding."""

import random

import pytest

from mixcraft.codec import (
    COLUMNS, decode_listing, decode_submission, encode_rows, format_time, parse_time,
)
from mixcraft.models import MixSong, SubmissionRecord


def _record(*songs) -> SubmissionRecord:
    return SubmissionRecord(name="Ada", email="ada@example.com", purpose="Wedding", songs=tuple(songs))


@pytest.mark.parametrize(
    "seconds, text",
    [
        (0, "0:00"),
        (5, "0:05"),
        (65, "1:05"),
        (3599, "59:59"),
        (3600, "1:00:00"),
        (3725, "1:02:05"),
        (36000, "10:00:00"),
    ],
)
def test_format_time_branches_at_one_hour(seconds: int, text: str) -> None:
    assert format_time(seconds) == text


def test_format_time_floors_fractions_and_negative_values() -> None:
    assert format_time(61.9) == "1:01"
    assert format_time(-4) == "0:00"


def test_parse_time_inverts_format_time() -> None:
    samples = list(range(0, 4000)) + [random.randint(0, 10 ** 6) for _ in range(200)]
    for seconds in samples:
        assert parse_time(format_time(seconds)) == seconds


def test_parse_time_accepts_plain_seconds() -> None:
    assert parse_time("42") == 42


@pytest.mark.parametrize("text", ["", "abc", "1:xx", "1:2:3:4", "-1:00"])
def test_parse_time_rejects_malformed_text(text: str) -> None:
    with pytest.raises(ValueError):
        parse_time(text)


def test_encode_rows_uses_column_order_and_one_based_numbers() -> None:
    record = _record(
        MixSong("https://youtu.be/a", 0, 30, "first", "fade"),
        MixSong("https://youtu.be/b", 3600, 3725, "second", ""),
    )

    rows = encode_rows(record, "sub-1", "2024-05-01T10:00:00+00:00")

    assert len(rows) == 2
    assert all(len(row) == len(COLUMNS) for row in rows)
    assert rows[0] == [
        "sub-1", "2024-05-01T10:00:00+00:00", "Ada", "ada@example.com", "Wedding",
        1, "https://youtu.be/a", "0:00", "0:30", "first", "fade",
    ]
    assert rows[1][5] == 2
    assert rows[1][7:9] == ["1:00:00", "1:02:05"]


def test_decode_submission_orders_by_song_number_not_row_order() -> None:
    record = _record(
        MixSong("https://youtu.be/a", 0, 30, "first", "fade"),
        MixSong("https://youtu.be/b", 45, 90, "second", ""),
    )
    rows = [[str(cell) for cell in row] for row in encode_rows(record, "sub-1", "2024-05-01T10:00:00+00:00")]

    decoded = decode_submission(list(reversed(rows)))

    assert decoded.submission_id == "sub-1"
    assert decoded.record == record
    assert decoded.timestamp.year == 2024


def test_decode_submission_zeroes_unparseable_times() -> None:
    row = ["sub-1", "2024-05-01T10:00:00Z", "Ada", "a@b.co", "x", "1", "u", "soon", "1:00", "", ""]

    decoded = decode_submission([row])

    assert decoded.songs[0].start_time == 0
    assert decoded.songs[0].end_time == 60


def test_decode_submission_fills_missing_trailing_cells() -> None:
    row = ["sub-1", "2024-05-01T10:00:00Z", "Ada", "a@b.co", "x", "1", "u", "0:10", "0:20"]

    song = decode_submission([row]).songs[0]

    assert song.song_notes == ""
    assert song.transition_notes == ""


def test_decode_submission_requires_rows() -> None:
    with pytest.raises(ValueError):
        decode_submission([])


def test_decode_listing_groups_and_orders_newest_first() -> None:
    song = MixSong("u", 0, 30, "", "")
    rows = []
    rows += encode_rows(_record(song), "t2", "2024-02-01T00:00:00+00:00")
    rows += encode_rows(_record(song, song), "t1", "2024-01-01T00:00:00+00:00")
    rows += encode_rows(_record(song), "t3", "2024-03-01T00:00:00+00:00")
    rows.append(["", "", "", "", "", "", "", "", "", "", ""])
    random.Random(7).shuffle(rows)

    listing = decode_listing(rows)

    assert [s.submission_id for s in listing] == ["t3", "t2", "t1"]
    assert len(listing[2].songs) == 2


def test_decode_listing_puts_bad_timestamps_last() -> None:
    rows = [
        ["bad", "not a date", "n", "e", "p", "1", "u", "0:00", "0:30", "", ""],
        ["good", "2024-01-01T00:00:00+00:00", "n", "e", "p", "1", "u", "0:00", "0:30", "", ""],
    ]

    listing = decode_listing(rows)

    assert [s.submission_id for s in listing] == ["good", "bad"]


@pytest.mark.parametrize("number", ["inf", "-inf", "nan", "first"])
def test_decode_listing_survives_unparseable_song_numbers(number) -> None:
    rows = [
        ["good", "2024-01-01T00:00:00+00:00", "n", "e", "p", "1", "u", "0:00", "0:30", "", ""],
        ["odd", "2024-02-01T00:00:00+00:00", "n", "e", "p", number, "u", "0:10", "0:20", "", ""],
    ]

    listing = decode_listing(rows)

    assert [s.submission_id for s in listing] == ["odd", "good"]
    assert listing[0].songs[0].start_time == 10
    assert listing[1].timestamp is None
