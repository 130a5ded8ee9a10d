"""Utility functions for YouTube URL handling."""

import re
import time
from typing import Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from .config import YouTubeConfig
from .logger import get_logger

logger = get_logger(__name__)

VIDEO_ID_PATTERNS = [
    re.compile(r'(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)'),
    re.compile(r'youtube\.com/v/([^&\n?#]+)'),
]
BARE_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{11}$')

PARTIAL_URL_PATTERNS = [
    re.compile(r'^https?://(www\.)?youtube\.com/watch\?v='),
    re.compile(r'^https?://youtu\.be/'),
    re.compile(r'^https?://(www\.)?youtube\.com/embed/'),
    re.compile(r'^https?://(www\.)?youtube\.com/v/'),
    re.compile(r'^youtube\.com/watch\?v='),
    re.compile(r'^youtu\.be/'),
    re.compile(r'^www\.youtube\.com/watch\?v='),
    re.compile(r'^[a-zA-Z0-9_-]{0,11}$'),
]


def extract_video_id(url: str) -> Optional[str]:
    """Extract the video id from watch, short, embed and /v/ URLs or a bare id."""
    if not url:
        return None
    url = url.strip()

    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    if BARE_ID_PATTERN.match(url):
        return url
    return None


def parse_time_parameter(value: str) -> float:
    """Parse ``90``, ``1m30s`` or ``1:30`` into seconds."""
    value = value.strip()
    if value.isdigit():
        return int(value)

    match = re.fullmatch(r'(?:(\d+)m)?(?:(\d+)s)?', value)
    if match and any(match.groups()):
        minutes = int(match.group(1) or 0)
        seconds = int(match.group(2) or 0)
        return minutes * 60 + seconds

    parts = value.split(':')
    if len(parts) == 2 and all(part.isdigit() for part in parts):
        return int(parts[0]) * 60 + int(parts[1])

    try:
        return float(value)
    except ValueError:
        return 0


def extract_time_params(url: str) -> Dict[str, float]:
    """
    Read the start (``t`` or ``start``) and ``end`` parameters of a URL.

    Incomplete URLs, as seen while the user is typing, yield an empty dict.
    """
    if not url or not url.strip():
        return {}
    parsed = urlparse(url.strip())
    if not parsed.scheme or not parsed.netloc:
        return {}

    query = parse_qs(parsed.query)
    params = {}
    start = (query.get('t') or query.get('start') or [None])[0]
    if start:
        params['start_time'] = parse_time_parameter(start)
    end = (query.get('end') or [None])[0]
    if end:
        try:
            params['end_time'] = float(end)
        except ValueError:
            pass
    return params


def validate_youtube_url(url: str) -> bool:
    if not url or len(url) < 10:
        return False
    video_id = extract_video_id(url)
    return video_id is not None and len(video_id) == 11


def is_potential_youtube_url(url: str) -> bool:
    """Whether a partially typed value could still become a YouTube URL."""
    if not url:
        return True
    return any(pattern.match(url) for pattern in PARTIAL_URL_PATTERNS) or len(url) < 20


def parse_youtube_url(url: str) -> dict:
    video_id = extract_video_id(url)
    info = {'video_id': video_id or '', 'is_valid': video_id is not None}
    info.update(extract_time_params(url))
    return info


def generate_embed_url(
    video_id: str,
    start_time: float = None,
    end_time: float = None,
    autoplay: bool = False,
    controls: bool = True,
    modestbranding: bool = False,
) -> str:
    """Build an embed URL carrying the window as start/end hints."""
    params = {}
    if start_time:
        params['start'] = int(start_time)
    if end_time:
        params['end'] = int(end_time)
    if autoplay:
        params['autoplay'] = 1
    if not controls:
        params['controls'] = 0
    if modestbranding:
        params['modestbranding'] = 1

    query = urlencode(params)
    return f"https://www.youtube.com/embed/{video_id}" + (f"?{query}" if query else "")


def fetch_video_title(url: str) -> Optional[str]:
    """
    Look up a video's title through the oEmbed endpoint.

    Args:
        url: A YouTube URL

    Returns:
        The title, or None if the lookup fails
    """
    video_id = extract_video_id(url)
    if video_id is None:
        return None
    watch_url = f"https://www.youtube.com/watch?v={video_id}"

    for attempt in range(YouTubeConfig.MAX_RETRIES):
        try:
            response = requests.get(
                YouTubeConfig.OEMBED_URL,
                params={'url': watch_url, 'format': 'json'},
                timeout=YouTubeConfig.REQUEST_TIMEOUT,
            )
            if response.status_code == 200:
                return response.json().get('title')
            if response.status_code in [429, 403, 503] and attempt < YouTubeConfig.MAX_RETRIES - 1:
                time.sleep((2 ** attempt) + 1)
                continue
            logger.info("oEmbed lookup for %s returned %s", video_id, response.status_code)
            return None
        except (requests.RequestException, ValueError) as e:
            logger.info("oEmbed lookup for %s failed: %s", video_id, e)
            if attempt == YouTubeConfig.MAX_RETRIES - 1:
                return None
            time.sleep(1)
    return None
