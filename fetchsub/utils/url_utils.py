"""
YouTube URL utility functions.

This module provides utilities for:
- Resolving a URL to a video, playlist or channel target
- Building canonical URLs back from IDs
- Mapping subtitle language codes to display names
"""

import re
from typing import NamedTuple, Optional


VIDEO_ID_RE = re.compile(
    r'(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts)/|.*[?&]v=)|youtu\.be/)([^"&?/\s]{11})',
    re.IGNORECASE,
)
PLAYLIST_ID_RE = re.compile(
    r'youtube\.com/(?:playlist\?(?:.*&)?list=|watch\?(?:.*&)?list=)([^&\s]+)',
    re.IGNORECASE,
)
CHANNEL_ID_RE = re.compile(r'youtube\.com/(?:channel/|c/|@)([^/\s?]+)', re.IGNORECASE)

LANGUAGE_NAMES = {
    'en': 'English',
    'es': 'Spanish',
    'fr': 'French',
    'de': 'German',
    'it': 'Italian',
    'pt': 'Portuguese',
    'ru': 'Russian',
    'ja': 'Japanese',
    'ko': 'Korean',
    'zh': 'Chinese',
    'ar': 'Arabic',
    'hi': 'Hindi',
    'auto': 'Auto-detected',
}


class YouTubeTarget(NamedTuple):
    """What a YouTube URL points at: kind is 'video', 'playlist' or 'channel'."""
    kind: str
    id: str


def parse_youtube_url(url: str) -> Optional[YouTubeTarget]:
    """
    Resolve a YouTube URL to the video, playlist or channel it points at.

    A watch URL carrying both v= and list= resolves to the video.
    Returns None for anything that is not a recognizable YouTube URL.

    Examples:
        "https://youtu.be/dQw4w9WgXcQ"                 -> ('video', 'dQw4w9WgXcQ')
        "https://www.youtube.com/playlist?list=PL123"   -> ('playlist', 'PL123')
        "https://www.youtube.com/@somechannel"          -> ('channel', 'somechannel')
    """
    if not url:
        return None
    url = url.strip()

    match = VIDEO_ID_RE.search(url)
    if match:
        return YouTubeTarget('video', match.group(1))

    match = PLAYLIST_ID_RE.search(url)
    if match:
        return YouTubeTarget('playlist', match.group(1))

    match = CHANNEL_ID_RE.search(url)
    if match:
        return YouTubeTarget('channel', match.group(1))

    return None


def is_playlist_or_channel_url(url: str) -> bool:
    """Cheap string check used when estimating cost before any lookup."""
    return any(marker in url for marker in ('playlist?list=', '&list=', '/channel/', '@'))


def video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def playlist_url(playlist_id: str) -> str:
    return f"https://www.youtube.com/playlist?list={playlist_id}"


def channel_videos_url(channel_id: str) -> str:
    # Handles (@name) and legacy custom names are not valid under /channel/
    if channel_id.startswith('UC') and len(channel_id) == 24:
        return f"https://www.youtube.com/channel/{channel_id}/videos"
    return f"https://www.youtube.com/@{channel_id.lstrip('@')}/videos"


def get_language_name(code: str) -> str:
    """Map a language code to its display name; unknown codes pass through."""
    return LANGUAGE_NAMES.get(code, code)
