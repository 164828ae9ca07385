"""
Subtitle service module.

Fetches video titles and caption tracks for single YouTube videos.
Transcripts are downloaded with the yt-dlp binary as VTT into a temporary
directory, parsed, and cached in memory. Recent failures are cached too so
a broken video in a large playlist is not retried on every request.
"""

import os
import glob
import shutil
import tempfile
from typing import List

import requests

from fetchsub.config import SUBTITLES_DIR, YTDLP_SUBTITLE_TIMEOUT, YTDLP_TITLE_TIMEOUT
from fetchsub.exceptions import YtdlpError
from fetchsub.services import cache_service
from fetchsub.services.ytdlp_service import (
    run_ytdlp_binary,
    classify_ytdlp_error,
    NO_SUBTITLES,
    TIMEOUT,
    UNKNOWN,
)
from fetchsub.utils.subtitle_utils import TranscriptItem, parse_vtt_content
from fetchsub.utils.url_utils import video_url


OEMBED_URL = "https://www.youtube.com/oembed"

# Failures worth retrying soon are never remembered
_TRANSIENT_FAILURES = {TIMEOUT, UNKNOWN}


def get_video_title(video_id: str) -> str:
    """
    Look up a video's title.

    Tries the YouTube oEmbed endpoint first, then `yt-dlp --print title`,
    and finally falls back to "YouTube Video <id>".
    """
    try:
        response = requests.get(
            OEMBED_URL,
            params={"url": video_url(video_id), "format": "json"},
            timeout=5
        )
        if response.status_code == 200:
            title = response.json().get("title")
            if title:
                return title
    except (requests.RequestException, ValueError) as e:
        print(f"WARNING: oEmbed title lookup failed for {video_id}: {str(e)}")

    stdout, _, returncode = run_ytdlp_binary(
        ['--no-warnings', '--skip-download', '--print', 'title', '--', video_id],
        timeout=YTDLP_TITLE_TIMEOUT
    )
    if returncode == 0 and stdout.strip():
        return stdout.strip().splitlines()[0]

    return f"YouTube Video {video_id}"


def _subtitle_language(language: str) -> str:
    return 'en' if not language or language == 'auto' else language


def fetch_transcript(video_id: str, language: str = "en", logger=None) -> List[TranscriptItem]:
    """
    Download and parse the caption track of one video.

    Manual subtitles are preferred; yt-dlp falls back to auto-generated
    captions when the language has no manual track.

    Args:
        video_id: 11-character YouTube video ID
        language: Subtitle language code, "auto" means English
        logger: Optional request logger

    Returns:
        Non-empty list of transcript items

    Raises:
        YtdlpError: With kind timeout, subtitles_disabled, private,
            unavailable, auth, no_subtitles or unknown
    """
    lang = _subtitle_language(language)

    cached = cache_service.get_cached_transcript(video_id, lang)
    if cached is not None:
        if logger:
            logger.info(f"Transcript cache hit for {video_id} ({lang})")
        return cached

    known_failure = cache_service.get_known_failure(video_id, lang)
    if known_failure:
        if logger:
            logger.info(f"Skipping {video_id}: failed recently ({known_failure})")
        raise YtdlpError(known_failure, f"Video {video_id} failed recently: {known_failure}")

    temp_dir = tempfile.mkdtemp(prefix=f"{video_id}-", dir=SUBTITLES_DIR)
    try:
        stdout, stderr, returncode = run_ytdlp_binary(
            [
                '--no-warnings',
                '--skip-download',
                '--write-sub',
                '--write-auto-sub',
                '--sub-lang', lang,
                '--sub-format', 'vtt',
                '--output', os.path.join(temp_dir, 'subtitle'),
                '--', video_id,
            ],
            timeout=YTDLP_SUBTITLE_TIMEOUT
        )

        vtt_files = sorted(glob.glob(os.path.join(temp_dir, '*.vtt')))
        if not vtt_files:
            kind = classify_ytdlp_error(stderr) if returncode != 0 else NO_SUBTITLES
            if logger:
                logger.warning(f"No subtitles for {video_id} ({kind}): {stderr.strip()[:200]}")
            if kind not in _TRANSIENT_FAILURES:
                cache_service.remember_failure(video_id, lang, kind)
            raise YtdlpError(kind, stderr.strip()[:500] or f"No subtitle file produced for {video_id}")

        with open(vtt_files[0], 'r', encoding='utf-8') as f:
            items = parse_vtt_content(f.read())

        if not items:
            cache_service.remember_failure(video_id, lang, NO_SUBTITLES)
            raise YtdlpError(NO_SUBTITLES, f"Subtitle file for {video_id} is empty")

        cache_service.store_transcript(video_id, lang, items)
        if logger:
            logger.info(f"Fetched {len(items)} subtitle cues for {video_id} ({lang})")
        return items
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
