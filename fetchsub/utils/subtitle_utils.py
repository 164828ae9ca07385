"""Subtitle parsing utilities: VTT cues to transcript items, HTML entity decoding."""

import re
import html
from dataclasses import dataclass
from typing import List

from fetchsub.utils.timestamp_utils import parse_vtt_timestamp


@dataclass
class TranscriptItem:
    """One caption cue. offset and duration are milliseconds."""
    text: str
    offset: int
    duration: int

    @property
    def end(self) -> int:
        return self.offset + self.duration


_DOUBLE_ENCODED_DEC = re.compile(r'&amp;#(\d+);')
_DOUBLE_ENCODED_HEX = re.compile(r'&amp;#x([0-9a-fA-F]+);')
_INLINE_TAG = re.compile(r'<[^>]+>')


def decode_html_entities(text: str) -> str:
    """
    Decode HTML entities, including the double-encoded numeric form
    (&amp;#39;) that YouTube auto captions sometimes contain.
    """
    if not text:
        return text
    text = _DOUBLE_ENCODED_DEC.sub(lambda m: chr(int(m.group(1))), text)
    text = _DOUBLE_ENCODED_HEX.sub(lambda m: chr(int(m.group(1), 16)), text)
    text = html.unescape(text)
    return text.replace('\xa0', ' ')


def parse_vtt_content(vtt_content: str) -> List[TranscriptItem]:
    """
    Parse VTT content into transcript items.

    The header (WEBVTT, Kind:, Language:) is skipped up to the first cue.
    Multi-line cue text is joined with spaces; inline timing and style tags
    such as <00:00:01.200><c>word</c> are removed. Cues whose text is empty
    after cleanup are dropped.
    """
    lines = re.split(r'\r?\n', vtt_content or '')
    items: List[TranscriptItem] = []

    i = 0
    while i < len(lines) and '-->' not in lines[i]:
        i += 1

    current_text: List[str] = []
    current_start = 0
    current_duration = 0

    def flush():
        text = ' '.join(current_text).strip()
        if text:
            items.append(TranscriptItem(text=text, offset=current_start, duration=current_duration))
        current_text.clear()

    for raw in lines[i:]:
        line = raw.strip()
        if '-->' in line:
            flush()
            start_str, end_str = line.split('-->', 1)
            current_start = parse_vtt_timestamp(start_str)
            # End field may carry positioning settings after the time
            end = parse_vtt_timestamp(end_str.strip().split(' ')[0])
            current_duration = max(0, end - current_start)
        elif not line:
            flush()
        elif line.isdigit() or line.startswith('WEBVTT') or line.startswith('NOTE'):
            continue
        else:
            cleaned = _INLINE_TAG.sub('', line).strip()
            if cleaned:
                current_text.append(cleaned)

    flush()
    return items
