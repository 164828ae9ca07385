"""
Playlist service module.

Lists the video IDs behind a playlist or channel with the yt-dlp binary,
and reads playlist metadata (title, size) through the yt_dlp library with
a prefix-based estimate when YouTube will not answer.
"""

from typing import List, Dict, Any

import yt_dlp

from fetchsub.config import YTDLP_PLAYLIST_TIMEOUT, MAX_CHANNEL_VIDEOS
from fetchsub.exceptions import PlaylistError
from fetchsub.services.ytdlp_service import run_ytdlp_binary
from fetchsub.utils.url_utils import playlist_url, channel_videos_url


def _parse_ids(stdout: str) -> List[str]:
    return [line.strip() for line in stdout.splitlines() if len(line.strip()) == 11]


def get_playlist_video_ids(playlist_id: str, logger=None) -> List[str]:
    """
    List the video IDs of a playlist.

    Three attempts, each cheaper than the last:
    1. --flat-playlist --print id
    2. --flat-playlist --get-id
    3. the first 5 items only

    Raises:
        PlaylistError: If no attempt returned any IDs
    """
    url = playlist_url(playlist_id)
    attempts = [
        (['--flat-playlist', '--quiet', '--print', '%(id)s', url], YTDLP_PLAYLIST_TIMEOUT),
        (['--no-warnings', '--flat-playlist', '--get-id', url], 60),
        (['--no-warnings', '--flat-playlist', '--get-id', '--playlist-items', '1-5', url], 30),
    ]

    last_error = ""
    for number, (args, timeout) in enumerate(attempts, 1):
        stdout, stderr, returncode = run_ytdlp_binary(args, timeout=timeout)
        video_ids = _parse_ids(stdout)
        if video_ids:
            if logger:
                logger.info(f"Playlist {playlist_id}: {len(video_ids)} videos (attempt {number})")
            return video_ids
        last_error = stderr.strip()[:200]
        if logger:
            logger.warning(f"Playlist {playlist_id}: attempt {number} found no videos ({last_error})")

    raise PlaylistError(
        f"Failed to fetch playlist videos. Please check if the playlist exists and is public. {last_error}".strip()
    )


def get_channel_video_ids(channel_id: str, limit: int = MAX_CHANNEL_VIDEOS, logger=None) -> List[str]:
    """
    List the most recent uploads of a channel.

    Raises:
        PlaylistError: If the channel listing failed or was empty
    """
    stdout, stderr, returncode = run_ytdlp_binary(
        ['--flat-playlist', '--print', 'id', '--playlist-end', str(limit), channel_videos_url(channel_id)],
        timeout=YTDLP_PLAYLIST_TIMEOUT
    )
    video_ids = _parse_ids(stdout)[:limit]
    if not video_ids:
        raise PlaylistError(f"Failed to fetch channel videos: {stderr.strip()[:200] or 'no videos found'}")
    if logger:
        logger.info(f"Channel {channel_id}: {len(video_ids)} recent videos")
    return video_ids


def estimate_playlist_size(playlist_id: str) -> int:
    """Typical size of a playlist by the kind its ID prefix indicates."""
    if playlist_id.startswith(('PLZ', 'PLE', 'PLT')):
        return 15
    if playlist_id.startswith(('PL', 'RDCL', 'OLAK5uy')):
        return 25
    if playlist_id.startswith('LL') or playlist_id.upper() == 'WL' or 'watchlater' in playlist_id.lower():
        return 30
    return 18


def get_playlist_info(playlist_id: str) -> Dict[str, Any]:
    """
    Title and video count of a playlist.

    Never raises: when yt-dlp cannot read the playlist an estimate is
    returned with is_estimate=True.
    """
    ydl_opts = {
        'extract_flat': 'in_playlist',
        'quiet': True,
        'no_warnings': True,
        'skip_download': True,
    }

    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(playlist_url(playlist_id), download=False)

        entries = [e for e in (info.get('entries') or []) if e]
        count = info.get('playlist_count') or len(entries)
        if count:
            return {
                'id': playlist_id,
                'title': info.get('title') or 'YouTube Playlist',
                'video_count': count,
                'is_estimate': False,
            }
    except Exception as e:
        print(f"WARNING: Playlist info lookup failed for {playlist_id}: {str(e)}")

    return {
        'id': playlist_id,
        'title': 'YouTube Playlist',
        'video_count': estimate_playlist_size(playlist_id),
        'is_estimate': True,
    }
