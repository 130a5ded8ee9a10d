"""Configuration constants and settings for the mix request form."""

import os
from pathlib import Path


class SelectorConfig:
    """Time-range selector defaults."""

    DEFAULT_START_TIME = 0
    DEFAULT_END_TIME = 30
    MIN_WINDOW_SECONDS = 1


class MediaConfig:
    """Media preview and playback sync settings."""

    SAMPLE_INTERVAL_SECONDS = 0.1
    DEFAULT_DURATION_SECONDS = 600.0
    LOOP_JOIN_TIMEOUT_SECONDS = 1.0
    WAVEFORM_POINTS = 400
    WAVEFORM_UNAVAILABLE_MESSAGE = (
        "Audio extraction from YouTube requires server-side processing"
    )


class StorageConfig:
    """Row store settings."""

    SHEET_NAME = "Submissions"
    CSV_FILENAME = "submissions.csv"
    BACKENDS = ["csv", "memory"]

    @staticmethod
    def get_backend() -> str:
        """Storage backend selected by MIXCRAFT_STORAGE_BACKEND."""
        backend = os.environ.get("MIXCRAFT_STORAGE_BACKEND", "csv").strip().lower()
        return backend or "csv"

    @staticmethod
    def get_data_dir() -> Path:
        """Directory holding the CSV row store."""
        return Path(os.environ.get("MIXCRAFT_DATA_DIR", "mix_submissions"))


class HandoffConfig:
    """Post-submit snapshot shown on the success view."""

    SESSION_KEY = "mix_submission"
    MAX_AGE_SECONDS = 60 * 10


class YouTubeConfig:
    """oEmbed lookups for song previews."""

    OEMBED_URL = "https://www.youtube.com/oembed"
    REQUEST_TIMEOUT = 10
    MAX_RETRIES = 3


class AppInfo:
    """Application metadata."""

    NAME = "mixcraft"
    VERSION = "1.0.0"
    TITLE = "Craft Your Mix"
    DESCRIPTION = "Tell us which songs to blend and how to move between them"
