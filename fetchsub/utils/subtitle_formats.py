"""
Subtitle output formatting.

Turns a list of TranscriptItem into one of the supported download formats:
SRT, VTT, TXT/PLAIN, PARAGRAPH, CLEAN_TEXT, JSON, ASS and SMI. Unknown
format names fall back to plain text.
"""

import re
import html
import json
from typing import List

from fetchsub.utils.subtitle_utils import TranscriptItem, decode_html_entities
from fetchsub.utils.timestamp_utils import format_srt_time, format_vtt_time, format_ass_time


FILE_EXTENSIONS = {
    "SRT": "srt",
    "VTT": "vtt",
    "TXT": "txt",
    "PLAIN": "txt",
    "PARAGRAPH": "txt",
    "CLEAN_TEXT": "txt",
    "JSON": "json",
    "ASS": "ass",
    "SMI": "smi",
}

MEDIA_TYPES = {
    "srt": "application/x-subrip",
    "vtt": "text/vtt",
    "json": "application/json",
    "ass": "text/x-ssa",
    "smi": "application/smil+xml",
}

ASS_HEADER = (
    "[Script Info]\n"
    "Title: {title}\n"
    "ScriptType: v4.00+\n"
    "WrapStyle: 0\n"
    "PlayResX: 1280\n"
    "PlayResY: 720\n"
    "\n"
    "[V4+ Styles]\n"
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, "
    "Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, "
    "Shadow, Alignment, MarginL, MarginR, MarginV, Encoding\n"
    "Style: Default,Arial,20,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,0,0,0,0,100,100,0,0,1,2,2,2,10,10,10,1\n"
    "\n"
    "[Events]\n"
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text\n"
)

SMI_HEADER = (
    "<SAMI>\n<HEAD>\n<TITLE>{title}</TITLE>\n"
    "<STYLE TYPE=\"text/css\">\n"
    "P { font-family: Arial; font-weight: normal; color: white; background-color: black; text-align: center; }\n"
    ".ENCC { name: English; lang: en-US; }\n"
    "</STYLE>\n</HEAD>\n<BODY>\n"
)

CAPTION_ARTIFACTS = re.compile(r'\[(?:music|applause|laughter|silence)\]', re.IGNORECASE)
FILLERS = [
    re.compile(r'\bum,?\s+', re.IGNORECASE),
    re.compile(r'\buh,?\s+', re.IGNORECASE),
    re.compile(r'\byou know,?\s+', re.IGNORECASE),
    re.compile(r'\bI mean,?\s+', re.IGNORECASE),
    re.compile(r'\bbasically,?\s+', re.IGNORECASE),
    re.compile(r'\bliterally,?\s+', re.IGNORECASE),
]
CONTRACTIONS = {
    'wont': "won't",
    'dont': "don't",
    'cant': "can't",
    'weve': "we've",
    'theyre': "they're",
    'youre': "you're",
}
SENTENCES_PER_PARAGRAPH = 5


def normalize_format(fmt: str) -> str:
    return (fmt or "TXT").strip().upper()


def file_extension(fmt: str) -> str:
    return FILE_EXTENSIONS.get(normalize_format(fmt), "txt")


def media_type(fmt: str) -> str:
    return MEDIA_TYPES.get(file_extension(fmt), "text/plain") + "; charset=utf-8"


def _to_srt(items: List[TranscriptItem]) -> str:
    return '\n\n'.join(
        f"{index}\n{format_srt_time(item.offset)} --> {format_srt_time(item.end)}\n{item.text}"
        for index, item in enumerate(items, 1)
    )


def _to_vtt(items: List[TranscriptItem]) -> str:
    return "WEBVTT\n\n" + '\n\n'.join(
        f"{format_vtt_time(item.offset)} --> {format_vtt_time(item.end)}\n{item.text}"
        for item in items
    )


def _to_json(items: List[TranscriptItem], title: str) -> str:
    entries = [
        {
            "id": index,
            "startTime": format_vtt_time(item.offset),
            "endTime": format_vtt_time(item.end),
            "startSeconds": item.offset / 1000,
            "endSeconds": item.end / 1000,
            "text": item.text,
        }
        for index, item in enumerate(items, 1)
    ]
    return json.dumps({
        "title": title,
        "entries": entries,
        "totalCount": len(items),
        "totalDuration": sum(item.duration for item in items) / 1000,
    }, indent=2, ensure_ascii=False)


def _to_ass(items: List[TranscriptItem], title: str) -> str:
    events = '\n'.join(
        f"Dialogue: 0,{format_ass_time(item.offset)},{format_ass_time(item.end)},Default,,0,0,0,,"
        + item.text.replace('\n', '\\N')
        for item in items
    )
    return ASS_HEADER.format(title=title) + events


def _to_smi(items: List[TranscriptItem], title: str) -> str:
    body = ''.join(
        f"<SYNC Start={int(item.offset)}>\n<P Class=ENCC>"
        + html.escape(item.text, quote=False).replace('\n', '<BR>')
        + "</P>\n</SYNC>\n"
        for item in items
    )
    return SMI_HEADER.format(title=html.escape(title, quote=False)) + body + "</BODY>\n</SAMI>"


def _dedupe_repeated_phrases(words: List[str], window: int = 8) -> List[str]:
    """
    Drop words that start a repeat of a phrase seen within the last `window`
    words. Auto captions roll the previous line into the next cue, so the
    same two or more words show up twice in a row.
    """
    kept = []
    for i, word in enumerate(words):
        duplicate = False
        if i >= window:
            for j in range(1, window + 1):
                if words[i - j] != word or i + 1 >= len(words) or words[i + 1] != words[i - j + 1]:
                    continue
                match_length = 0
                for k in range(4):
                    if i + k >= len(words) or words[i + k] != words[i - j + k]:
                        break
                    match_length += 1
                if match_length >= 2:
                    duplicate = True
                    break
        if not duplicate:
            kept.append(word)
    return kept


def _fix_punctuation(text: str) -> str:
    text = re.sub(r'\s+([.!?,:;])', r'\1', text)
    text = re.sub(r'([.!?])\s*([a-z])', r'\1 \2', text)
    text = re.sub(r'([.!?]\s+)([a-z])', lambda m: m.group(1) + m.group(2).upper(), text)
    for wrong, right in CONTRACTIONS.items():
        text = re.sub(rf'\b{wrong}\b', right, text)
    text = re.sub(r'\bim\b', "I'm", text, flags=re.IGNORECASE)
    return re.sub(r'\s+', ' ', text).strip()


def _to_clean_text(items: List[TranscriptItem]) -> str:
    pieces = []
    for item in items:
        text = re.sub(r'<[^>]*>', '', item.text)
        text = re.sub(r'align:start position:\d+%', '', text)
        text = CAPTION_ARTIFACTS.sub('', text)
        text = re.sub(r'\s+', ' ', text).strip()
        if text:
            pieces.append(text)

    words = ' '.join(pieces).split(' ')
    text = _fix_punctuation(' '.join(_dedupe_repeated_phrases(words)))

    sentences = [s for s in re.split(r'(?<=[.!?])\s+', text) if s.strip()]
    paragraphs = [
        ' '.join(sentences[i:i + SENTENCES_PER_PARAGRAPH])
        for i in range(0, len(sentences), SENTENCES_PER_PARAGRAPH)
    ]

    cleaned = []
    for paragraph in paragraphs:
        for filler in FILLERS:
            paragraph = filler.sub(' ', paragraph)
        paragraph = re.sub(r'\s+', ' ', paragraph)
        paragraph = re.sub(r'\s+([.!?,:;])', r'\1', paragraph).strip()
        if paragraph:
            cleaned.append(paragraph[0].upper() + paragraph[1:])
    return '\n\n'.join(cleaned)


def format_transcript(items: List[TranscriptItem], fmt: str, title: str = "Subtitle") -> str:
    """
    Render transcript items in the requested format.

    Entity decoding runs first for every format. An empty transcript is an
    error rather than an empty file.

    Raises:
        ValueError: If items is empty
    """
    if not items:
        raise ValueError("Transcript is empty")

    items = [TranscriptItem(decode_html_entities(i.text), i.offset, i.duration) for i in items]
    fmt = normalize_format(fmt)

    if fmt == "SRT":
        return _to_srt(items)
    elif fmt == "VTT":
        return _to_vtt(items)
    elif fmt == "PARAGRAPH":
        return ' '.join(item.text.replace('\n', ' ') for item in items)
    elif fmt == "CLEAN_TEXT":
        return _to_clean_text(items)
    elif fmt == "JSON":
        return _to_json(items, title)
    elif fmt == "ASS":
        return _to_ass(items, title)
    elif fmt == "SMI":
        return _to_smi(items, title)
    else:
        # TXT, PLAIN and anything unrecognized
        return '\n\n'.join(item.text for item in items)
