"""
Cache service module.

This module provides utilities for:
- In-memory TTL caches for fetched transcripts and for videos known to fail
- Cleaning up leftover temporary subtitle files on disk
"""

import os
import time
import shutil
import threading
from typing import Optional, Dict, Any, List

from cachetools import TTLCache

from fetchsub.config import (
    CACHE_DIR,
    CACHE_TTL_HOURS,
    TRANSCRIPT_CACHE_TTL,
    NEGATIVE_CACHE_TTL,
)


CACHE_SUBDIRS = ["subtitles"]

_cache_lock = threading.Lock()
transcript_cache: TTLCache = TTLCache(maxsize=500, ttl=TRANSCRIPT_CACHE_TTL)
negative_cache: TTLCache = TTLCache(maxsize=1000, ttl=NEGATIVE_CACHE_TTL)


def get_cached_transcript(video_id: str, language: str) -> Optional[List[Any]]:
    with _cache_lock:
        return transcript_cache.get((video_id, language))


def store_transcript(video_id: str, language: str, items: List[Any]) -> None:
    with _cache_lock:
        transcript_cache[(video_id, language)] = items


def get_known_failure(video_id: str, language: str) -> Optional[str]:
    """Return the cached failure kind for this video, if it failed recently."""
    with _cache_lock:
        return negative_cache.get((video_id, language))


def remember_failure(video_id: str, language: str, kind: str) -> None:
    with _cache_lock:
        negative_cache[(video_id, language)] = kind


def clear_memory_caches() -> Dict[str, int]:
    with _cache_lock:
        cleared = {"transcripts": len(transcript_cache), "failures": len(negative_cache)}
        transcript_cache.clear()
        negative_cache.clear()
    return cleared


def memory_cache_stats() -> Dict[str, Any]:
    with _cache_lock:
        return {
            "transcripts": {
                "size": transcript_cache.currsize,
                "max_size": transcript_cache.maxsize,
                "ttl_seconds": transcript_cache.ttl,
            },
            "failures": {
                "size": negative_cache.currsize,
                "max_size": negative_cache.maxsize,
                "ttl_seconds": negative_cache.ttl,
            },
        }


def cleanup_cache() -> Dict[str, Any]:
    """
    Delete temporary files and directories older than TTL.

    yt-dlp writes each download into its own temp directory under
    CACHE_DIR/subtitles; these are removed right after parsing, so anything
    left behind here comes from a crashed or killed request.

    Returns:
        Dictionary containing:
        - deleted: Count of entries deleted per category
        - total_deleted: Total number of entries deleted
        - freed_bytes: Total disk space freed in bytes
    """
    cutoff = time.time() - (CACHE_TTL_HOURS * 3600)
    deleted = {subdir: 0 for subdir in CACHE_SUBDIRS}
    freed_bytes = 0

    for subdir in CACHE_SUBDIRS:
        dir_path = os.path.join(CACHE_DIR, subdir)
        if not os.path.exists(dir_path):
            continue
        for name in os.listdir(dir_path):
            path = os.path.join(dir_path, name)
            if os.path.getmtime(path) >= cutoff:
                continue
            if os.path.isdir(path):
                for root, _, files in os.walk(path):
                    freed_bytes += sum(os.path.getsize(os.path.join(root, f)) for f in files)
                shutil.rmtree(path, ignore_errors=True)
            else:
                freed_bytes += os.path.getsize(path)
                os.remove(path)
            deleted[subdir] += 1

    return {
        "deleted": deleted,
        "total_deleted": sum(deleted.values()),
        "freed_bytes": freed_bytes
    }
