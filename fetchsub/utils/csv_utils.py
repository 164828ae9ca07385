"""
CSV utility functions for bulk subtitle requests.

This module provides utilities for:
- Detecting the delimiter and header row of an uploaded CSV
- Extracting YouTube URLs from any field (including free-text columns)
- De-duplicating and classifying the URLs found
"""

import io
import re
import csv
from dataclasses import dataclass, field
from typing import Dict, List

from fetchsub.utils.url_utils import parse_youtube_url


DELIMITERS = [',', ';', '\t', '|']

URL_IN_TEXT_RE = re.compile(
    r'https?://(?:www\.)?(?:youtube\.com/(?:watch\?v=|playlist\?list=|channel/|c/|@)|youtu\.be/)[^\s"\'<>]+'
)


@dataclass
class CSVParseResult:
    urls: List[str]
    stats: Dict[str, int] = field(default_factory=dict)


def detect_delimiter(content: str) -> str:
    """Pick the delimiter that occurs most often in the first 5 lines (',' on ties or none)."""
    sample = '\n'.join(content.splitlines()[:5])
    best, best_count = ',', 0
    for delimiter in DELIMITERS:
        count = sample.count(delimiter)
        if count > best_count:
            best, best_count = delimiter, count
    return best


def _has_youtube_url(fields: List[str]) -> bool:
    return any('youtube.com/' in f or 'youtu.be/' in f for f in fields)


def has_header_row(first_line: str, second_line: str, delimiter: str) -> bool:
    """
    Guess whether the first line is a header.

    A line holding a YouTube URL is never a header. Otherwise headers have
    the same field count as data, and either shorter fields on average or no
    URLs while the next line has one.
    """
    if not second_line:
        return False
    first = first_line.split(delimiter)
    second = second_line.split(delimiter)
    if _has_youtube_url(first) or len(first) != len(second):
        return False

    first_avg = sum(len(f) for f in first) / len(first)
    second_avg = sum(len(f) for f in second) / len(second)
    if first_avg < second_avg:
        return True

    return _has_youtube_url(second)


def extract_urls_from_text(text: str) -> List[str]:
    return URL_IN_TEXT_RE.findall(text)


def parse_csv_content(content: str) -> CSVParseResult:
    """
    Parse uploaded CSV text and return unique, recognizable YouTube URLs.

    Stats keys: total_rows, valid_urls, duplicates, invalid_urls,
    playlist_count, channel_count, single_video_count.
    """
    stats = {
        "total_rows": 0,
        "valid_urls": 0,
        "duplicates": 0,
        "invalid_urls": 0,
        "playlist_count": 0,
        "channel_count": 0,
        "single_video_count": 0,
    }

    lines = [line for line in (content or '').splitlines() if line.strip()]
    stats["total_rows"] = len(lines)
    if not lines:
        return CSVParseResult(urls=[], stats=stats)

    delimiter = detect_delimiter(content)
    skip_header = has_header_row(lines[0], lines[1], delimiter) if len(lines) > 1 else False
    body = lines[1:] if skip_header else lines

    found: List[str] = []
    try:
        for record in csv.reader(io.StringIO('\n'.join(body)), delimiter=delimiter, strict=True):
            for value in record:
                found.extend(extract_urls_from_text(value.strip()))
    except csv.Error:
        # Malformed quoting; scan the raw lines instead
        found = []
        for line in body:
            found.extend(extract_urls_from_text(line.strip()))

    unique: List[str] = []
    seen = set()
    for url in found:
        if url in seen:
            stats["duplicates"] += 1
            continue

        target = parse_youtube_url(url)
        if target is None:
            stats["invalid_urls"] += 1
            continue

        seen.add(url)
        unique.append(url)
        stats["valid_urls"] += 1
        if target.kind == 'playlist':
            stats["playlist_count"] += 1
        elif target.kind == 'channel':
            stats["channel_count"] += 1
        else:
            stats["single_video_count"] += 1

    return CSVParseResult(urls=unique, stats=stats)


def count_youtube_lines(content: str) -> int:
    """Number of lines mentioning a YouTube URL, used for up-front cost estimates."""
    return sum(
        1 for line in (content or '').splitlines()
        if 'youtube.com' in line or 'youtu.be' in line
    )
