"""
Extraction service module.

Turns a request (one URL or a CSV of URLs) into formatted subtitle results.
Playlists and channels are expanded to their videos, and videos are processed
concurrently behind a semaphore, each with an overall timeout. A video that
fails never fails the batch: it becomes a result entry with `error` and
`notice` set.
"""

import math
import asyncio
from urllib.parse import urlencode
from typing import List, Dict, Optional, Tuple

from fetchsub.config import (
    MAX_CONCURRENT_EXTRACTIONS,
    MAX_PLAYLIST_VIDEOS,
    MAX_CHANNEL_VIDEOS,
    REQUEST_TIMEOUT,
)
from fetchsub.exceptions import YtdlpError, PlaylistError
from fetchsub.models import SubtitleResult, ProcessingStats
from fetchsub.services import status_service
from fetchsub.services.playlist_service import get_playlist_video_ids, get_channel_video_ids
from fetchsub.services.subtitle_service import get_video_title, fetch_transcript
from fetchsub.services.ytdlp_service import (
    TIMEOUT,
    SUBTITLES_DISABLED,
    PRIVATE,
    UNAVAILABLE,
    AUTH,
    NO_SUBTITLES,
    UNKNOWN,
)
from fetchsub.utils.csv_utils import parse_csv_content
from fetchsub.utils.subtitle_formats import format_transcript, normalize_format
from fetchsub.utils.url_utils import parse_youtube_url, video_url, get_language_name


SUMMARY_ID = "summary"
SUMMARY_TITLE = "Batch Processing Summary"

ERROR_MESSAGES = {
    SUBTITLES_DISABLED: (
        "Subtitles are disabled for this video",
        "The creator has turned off captions for this video.",
    ),
    TIMEOUT: (
        "Timed out while fetching subtitles",
        "YouTube took too long to respond. Please try again in a moment.",
    ),
    UNAVAILABLE: (
        "Video is unavailable",
        "The video may have been removed or is not available in this region.",
    ),
    PRIVATE: (
        "Video is private",
        "Only the owner can view this video, so its subtitles cannot be fetched.",
    ),
    AUTH: (
        "YouTube requires sign-in for this video",
        "Age-restricted or members-only videos are not supported.",
    ),
    NO_SUBTITLES: (
        "No subtitles found",
        "This video has no manual or auto-generated captions in the requested language.",
    ),
}
DEFAULT_ERROR = (
    "Failed to fetch subtitles",
    "Something went wrong while fetching subtitles. Please try again later.",
)


def download_url(video_id: str, fmt: str, language: str) -> str:
    return "/api/youtube/download?" + urlencode({"id": video_id, "format": fmt, "lang": language})


def file_size_kb(content: str) -> int:
    return math.ceil(len(content.encode("utf-8")) / 1024)


def error_result(
    video_id: str,
    title: str,
    fmt: str,
    language: str,
    kind: str,
    in_batch: bool = False,
) -> SubtitleResult:
    error, notice = ERROR_MESSAGES.get(kind, DEFAULT_ERROR)
    return SubtitleResult(
        id=video_id,
        video_title=title,
        language=get_language_name(language),
        format=normalize_format(fmt),
        url=video_url(video_id),
        is_playlist_or_channel=in_batch,
        error=error,
        notice=notice,
    )


def extract_video_subtitles(
    video_id: str,
    formats: List[str],
    language: str = "en",
    logger=None,
    in_batch: bool = False,
) -> List[SubtitleResult]:
    """
    Fetch one video's transcript and render it in every requested format.

    Returns one result per format. On failure every format gets the same
    error entry.
    """
    title = get_video_title(video_id)

    try:
        items = fetch_transcript(video_id, language, logger=logger)
    except YtdlpError as e:
        if logger:
            logger.warning(f"Subtitle extraction failed for {video_id}: {e.kind}")
        return [error_result(video_id, title, fmt, language, e.kind, in_batch) for fmt in formats]

    results = []
    for fmt in formats:
        fmt = normalize_format(fmt)
        content = format_transcript(items, fmt, title)
        results.append(SubtitleResult(
            id=video_id,
            video_title=title,
            language=get_language_name(language),
            format=fmt,
            file_size=file_size_kb(content),
            content=content,
            url=video_url(video_id),
            download_url=download_url(video_id, fmt, language),
            is_playlist_or_channel=in_batch,
        ))
    return results


def extract_subtitles(url: str, fmt: str = "SRT", language: str = "en", logger=None) -> SubtitleResult:
    """
    Single-video, single-format extraction.

    Raises:
        ValueError: If the URL does not point at a YouTube video
    """
    target = parse_youtube_url(url)
    if target is None or target.kind != "video":
        raise ValueError("URL must point to a single YouTube video")
    return extract_video_subtitles(target.id, [fmt], language, logger=logger)[0]


async def process_videos(
    video_ids: List[str],
    formats: List[str],
    language: str,
    process_id: Optional[str] = None,
    logger=None,
    in_batch: bool = False,
) -> List[SubtitleResult]:
    """
    Extract subtitles for many videos, at most MAX_CONCURRENT_EXTRACTIONS at once.

    Results keep the order of video_ids.
    """
    semaphore = asyncio.Semaphore(MAX_CONCURRENT_EXTRACTIONS)

    async def worker(video_id: str) -> List[SubtitleResult]:
        await semaphore.acquire()
        task = asyncio.ensure_future(
            asyncio.to_thread(extract_video_subtitles, video_id, formats, language, logger, in_batch)
        )
        # A timed-out thread keeps its slot until it actually ends
        task.add_done_callback(lambda _: semaphore.release())
        title = f"YouTube Video {video_id}"
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=REQUEST_TIMEOUT)
        except asyncio.TimeoutError:
            if logger:
                logger.warning(f"Video {video_id} exceeded {REQUEST_TIMEOUT}s, giving up")
            return [error_result(video_id, title, fmt, language, TIMEOUT, in_batch) for fmt in formats]
        except Exception as e:
            if logger:
                logger.error(f"Unexpected error extracting {video_id}: {str(e)}")
            return [error_result(video_id, title, fmt, language, UNKNOWN, in_batch) for fmt in formats]
        finally:
            if process_id:
                status_service.advance(process_id)

    per_video = await asyncio.gather(*(worker(video_id) for video_id in video_ids))
    return [result for results in per_video for result in results]


def summary_result(results: List[SubtitleResult], language: str) -> SubtitleResult:
    videos = {r.id for r in results if not r.is_summary}
    failed = {r.id for r in results if r.error and not r.is_summary}
    generated = sum(1 for r in results if not r.error and not r.is_summary)

    content = (
        f"{SUMMARY_TITLE}\n\n"
        f"Videos processed: {len(videos)}\n"
        f"Successful videos: {len(videos) - len(failed)}\n"
        f"Subtitle files generated: {generated}\n"
        f"Videos with errors: {len(failed)}\n"
    )
    return SubtitleResult(
        id=SUMMARY_ID,
        video_title=SUMMARY_TITLE,
        language=get_language_name(language),
        format="TXT",
        file_size=file_size_kb(content),
        content=content,
        is_playlist_or_channel=True,
        is_summary=True,
    )


def compute_processing_stats(results: List[SubtitleResult], formats: List[str]) -> ProcessingStats:
    """
    Count videos, not files. processed_videos is what gets charged, so a
    video with a partial set of formats is still counted (rounded up).
    """
    format_count = max(len(formats), 1)
    entries = [r for r in results if not r.is_summary]
    successful = sum(1 for r in entries if not r.error)
    failed = sum(1 for r in entries if r.error)
    return ProcessingStats(
        total_videos=math.ceil(len(entries) / format_count),
        processed_videos=math.ceil(successful / format_count),
        error_count=math.ceil(failed / format_count),
        formats=[normalize_format(f) for f in formats],
    )


async def _expand_target(kind: str, target_id: str, logger=None) -> List[str]:
    """Video IDs behind a playlist or channel, capped to the configured maximum."""
    if kind == "playlist":
        ids = await asyncio.to_thread(get_playlist_video_ids, target_id, logger)
        return ids[:MAX_PLAYLIST_VIDEOS]
    ids = await asyncio.to_thread(get_channel_video_ids, target_id, MAX_CHANNEL_VIDEOS, logger)
    return ids[:MAX_CHANNEL_VIDEOS]


def _expansion_errors(
    kind: str, target_id: str, message: str, formats: List[str], language: str
) -> List[SubtitleResult]:
    """One error entry per format, so stats count the failed target once."""
    label = "playlist" if kind == "playlist" else "channel"
    return [SubtitleResult(
        id=target_id,
        video_title=f"YouTube {label.title()}",
        language=get_language_name(language),
        format=normalize_format(fmt),
        is_playlist_or_channel=True,
        error=f"Could not list the videos of this {label}",
        notice=(
            f"{message} Make sure the {label} is public, or paste the individual "
            "video URLs instead."
        ),
    ) for fmt in formats]


async def process_youtube_url(
    url: str,
    formats: List[str],
    language: str = "en",
    process_id: Optional[str] = None,
    logger=None,
) -> List[SubtitleResult]:
    """
    Extract subtitles for a video, playlist or channel URL.

    Raises:
        ValueError: If the URL is not a recognizable YouTube URL
    """
    target = parse_youtube_url(url)
    if target is None:
        raise ValueError("Invalid YouTube URL")

    if target.kind == "video":
        return await process_videos([target.id], formats, language, process_id, logger)

    try:
        video_ids = await _expand_target(target.kind, target.id, logger)
    except PlaylistError as e:
        if logger:
            logger.error(f"Could not expand {target.kind} {target.id}: {str(e)}")
        return _expansion_errors(target.kind, target.id, str(e), formats, language)

    if process_id:
        status_service.set_total(process_id, len(video_ids))
    if logger:
        logger.info(f"Processing {len(video_ids)} videos from {target.kind} {target.id}")

    results = await process_videos(video_ids, formats, language, process_id, logger, in_batch=True)
    if len(video_ids) > 1:
        results.append(summary_result(results, language))
    return results


async def process_csv(
    content: str,
    formats: List[str],
    language: str = "en",
    process_id: Optional[str] = None,
    logger=None,
) -> Tuple[List[SubtitleResult], Dict[str, int]]:
    """
    Extract subtitles for every YouTube URL found in CSV text.

    Playlists and channels in the file are expanded; repeated videos are
    processed once. A summary entry is always appended.

    Raises:
        ValueError: If the CSV contains no YouTube URLs
    """
    parsed = parse_csv_content(content)
    if not parsed.urls:
        raise ValueError("No valid YouTube URLs found in the CSV file")

    video_ids: List[str] = []
    expansion_errors: List[SubtitleResult] = []
    for url in parsed.urls:
        target = parse_youtube_url(url)
        if target.kind == "video":
            video_ids.append(target.id)
            continue
        try:
            video_ids.extend(await _expand_target(target.kind, target.id, logger))
        except PlaylistError as e:
            expansion_errors.extend(_expansion_errors(target.kind, target.id, str(e), formats, language))

    video_ids = list(dict.fromkeys(video_ids))
    if process_id:
        status_service.set_total(process_id, len(video_ids))
    if logger:
        logger.info(f"CSV: {len(parsed.urls)} URLs expanded to {len(video_ids)} videos")

    results = await process_videos(video_ids, formats, language, process_id, logger, in_batch=True)
    results.extend(expansion_errors)
    results.append(summary_result(results, language))
    return results, parsed.stats
