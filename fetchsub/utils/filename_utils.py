"""
Filename utility functions for subtitle downloads.

This module provides utilities for:
- Sanitizing filenames to be filesystem-safe
- Formatting video titles for filenames
- Building subtitle download filenames
- Encoding filenames for Content-Disposition headers
"""

import re
import unicodedata
from urllib.parse import quote


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to be safe for filesystem while preserving Unicode."""
    filename = unicodedata.normalize('NFC', filename)
    for char in '/\\:*?"<>|\0':
        filename = filename.replace(char, '-')
    filename = filename.strip('. ')
    if len(filename) > 200:
        filename = filename[:200]
    return filename or 'subtitles'


def format_title_for_filename(title: str, max_length: int = 60) -> str:
    """
    Format title for filename: drop a trailing "| Channel" part, sanitize,
    replace spaces with hyphens and truncate at a word boundary.
    """
    if '|' in title:
        title = title.split('|')[0].strip()

    title = sanitize_filename(title)
    title = re.sub(r'\s+', '-', title)
    title = re.sub(r'-+', '-', title).strip('-')

    if len(title) > max_length:
        truncated = title[:max_length]
        last_hyphen = truncated.rfind('-')
        title = truncated[:last_hyphen] if last_hyphen > max_length // 2 else truncated

    return title or 'subtitles'


def create_subtitle_filename(title: str, language: str, extension: str) -> str:
    """
    Example: ("My Video | Channel", "en", "srt") -> "My-Video.en.srt"
    """
    return f"{format_title_for_filename(title)}.{language}.{extension}"


def encode_content_disposition_filename(filename: str) -> str:
    """Encode filename for Content-Disposition header following RFC 5987."""
    try:
        filename.encode('ascii')
        safe_filename = filename.replace('"', '\\"')
        return f'attachment; filename="{safe_filename}"'
    except UnicodeEncodeError:
        encoded_filename = quote(filename, safe='')
        ascii_filename = unicodedata.normalize('NFD', filename)
        ascii_filename = ascii_filename.encode('ascii', 'ignore').decode('ascii')
        ascii_filename = ascii_filename.replace('"', '\\"') or 'subtitles'
        return f'attachment; filename="{ascii_filename}"; filename*=UTF-8\'\'{encoded_filename}'
