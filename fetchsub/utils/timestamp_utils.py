"""
Timestamp utility functions for parsing and formatting subtitle timestamps.

All transcript offsets are integer milliseconds. This module provides:
- Parsing VTT cue timestamps to milliseconds
- Formatting milliseconds for SRT, VTT and ASS
"""

import re


_HMS_RE = re.compile(r'(\d+):(\d+):(\d+)[.,](\d+)')
_MS_RE = re.compile(r'(\d+):(\d+)[.,](\d+)')


def parse_vtt_timestamp(timestamp: str) -> int:
    """
    Convert a VTT cue timestamp to milliseconds.

    Examples:
        "00:01:23.456" -> 83456
        "01:02.500"    -> 62500
        "garbage"      -> 0
    """
    match = _HMS_RE.search(timestamp)
    if match:
        hours, minutes, seconds = int(match.group(1)), int(match.group(2)), int(match.group(3))
        millis = int(match.group(4).ljust(3, '0')[:3])
        return (hours * 3600 + minutes * 60 + seconds) * 1000 + millis

    match = _MS_RE.search(timestamp)
    if match:
        minutes, seconds = int(match.group(1)), int(match.group(2))
        millis = int(match.group(3).ljust(3, '0')[:3])
        return (minutes * 60 + seconds) * 1000 + millis

    return 0


def _split_ms(ms: int) -> tuple:
    ms = max(0, int(ms))
    hours = ms // 3_600_000
    minutes = (ms % 3_600_000) // 60_000
    seconds = (ms % 60_000) // 1000
    return hours, minutes, seconds, ms % 1000


def format_srt_time(ms: int) -> str:
    """Convert milliseconds to SRT timestamp format: HH:MM:SS,mmm"""
    hours, minutes, seconds, millis = _split_ms(ms)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def format_vtt_time(ms: int) -> str:
    """Convert milliseconds to VTT timestamp format: HH:MM:SS.mmm"""
    hours, minutes, seconds, millis = _split_ms(ms)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def format_ass_time(ms: int) -> str:
    """Convert milliseconds to ASS timestamp format: H:MM:SS.cc"""
    hours, minutes, seconds, millis = _split_ms(ms)
    return f"{hours}:{minutes:02d}:{seconds:02d}.{millis // 10:02d}"

