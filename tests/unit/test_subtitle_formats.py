"""
Unit tests for VTT parsing and subtitle output formats.

This module tests:
- fetchsub/utils/subtitle_utils.py
- fetchsub/utils/subtitle_formats.py
"""

import json
import pytest

from fetchsub.utils.subtitle_utils import TranscriptItem, decode_html_entities, parse_vtt_content
from fetchsub.utils.subtitle_formats import (
    format_transcript,
    file_extension,
    media_type,
    normalize_format,
)


@pytest.fixture
def items(sample_vtt):
    return parse_vtt_content(sample_vtt)


class TestParseVtt:
    """Test VTT parsing."""

    def test_cues_parsed(self, items):
        assert len(items) == 3
        assert items[0] == TranscriptItem(text="Hello and welcome", offset=0, duration=2500)
        assert items[2].offset == 5000
        assert items[2].end == 7000

    def test_multiline_cue_joined_and_tags_stripped(self, items):
        assert items[1].text == "to the channel today we talk"

    def test_entities_left_for_formatting(self, items):
        assert items[2].text == "it&#39;s great"

    def test_empty_cues_dropped(self):
        vtt = "WEBVTT\n\n00:00:00.000 --> 00:00:01.000\n<c></c>\n\n00:00:01.000 --> 00:00:02.000\nkept\n"
        parsed = parse_vtt_content(vtt)
        assert [i.text for i in parsed] == ["kept"]

    def test_cue_numbers_and_notes_skipped(self):
        vtt = "WEBVTT\n\n1\n00:00:00.000 --> 00:00:01.000\nfirst\n\nNOTE a comment\n\n2\n00:00:01.000 --> 00:00:02.000\nsecond\n"
        parsed = parse_vtt_content(vtt)
        assert [i.text for i in parsed] == ["first", "second"]

    def test_crlf_line_endings(self):
        vtt = "WEBVTT\r\n\r\n00:00:00.000 --> 00:00:01.000\r\nhello\r\n"
        assert [i.text for i in parse_vtt_content(vtt)] == ["hello"]

    def test_empty_content(self):
        assert parse_vtt_content("") == []
        assert parse_vtt_content("WEBVTT\n\n") == []


class TestDecodeEntities:

    def test_double_encoded(self):
        assert decode_html_entities("it&amp;#39;s") == "it's"
        assert decode_html_entities("it&amp;#x27;s") == "it's"

    def test_named_and_numeric(self):
        assert decode_html_entities("&quot;hi&quot; &amp; &#39;bye&#39;") == "\"hi\" & 'bye'"

    def test_nbsp_becomes_space(self):
        assert decode_html_entities("a&nbsp;b") == "a b"


class TestFormatTranscript:
    """Test rendering in every output format."""

    def test_srt(self, items):
        result = format_transcript(items, "SRT")
        assert result.startswith("1\n00:00:00,000 --> 00:00:02,500\nHello and welcome\n\n2\n")
        assert "3\n00:00:05,000 --> 00:00:07,000\nit's great" in result

    def test_vtt(self, items):
        result = format_transcript(items, "vtt")
        assert result.startswith("WEBVTT\n\n00:00:00.000 --> 00:00:02.500\nHello and welcome")

    def test_txt_and_plain(self, items):
        expected = "Hello and welcome\n\nto the channel today we talk\n\nit's great"
        assert format_transcript(items, "TXT") == expected
        assert format_transcript(items, "PLAIN") == expected

    def test_unknown_format_is_plain_text(self, items):
        assert format_transcript(items, "DOCX") == format_transcript(items, "TXT")

    def test_paragraph(self, items):
        assert format_transcript(items, "PARAGRAPH") == "Hello and welcome to the channel today we talk it's great"

    def test_json(self, items):
        data = json.loads(format_transcript(items, "JSON", title="My Video"))
        assert data["title"] == "My Video"
        assert data["totalCount"] == 3
        assert data["totalDuration"] == 7.0
        assert data["entries"][0]["startTime"] == "00:00:00.000"
        assert data["entries"][2]["endSeconds"] == 7.0
        assert data["entries"][2]["text"] == "it's great"

    def test_ass(self, items):
        result = format_transcript(items, "ASS", title="My Video")
        assert result.startswith("[Script Info]\nTitle: My Video\n")
        assert "Dialogue: 0,0:00:00.00,0:00:02.50,Default,,0,0,0,,Hello and welcome" in result

    def test_smi(self, items):
        result = format_transcript(items, "SMI", title="My Video")
        assert "<TITLE>My Video</TITLE>" in result
        assert "<SYNC Start=2500>" in result
        assert result.endswith("</BODY>\n</SAMI>")

    def test_smi_escapes_markup(self):
        cues = [TranscriptItem("Tom & Jerry <live>\nsecond line", 0, 1000)]
        result = format_transcript(cues, "SMI", title="Q&A <2026>")
        assert "<TITLE>Q&amp;A &lt;2026&gt;</TITLE>" in result
        assert "<P Class=ENCC>Tom &amp; Jerry &lt;live&gt;<BR>second line</P>" in result

    def test_clean_text(self):
        cues = [
            TranscriptItem("um so [Music] hello there.", 0, 1000),
            TranscriptItem("this is great.", 1000, 1000),
        ]
        assert format_transcript(cues, "CLEAN_TEXT") == "So hello there. This is great."

    def test_clean_text_paragraphs(self):
        cues = [TranscriptItem(f"Sentence {n}.", n * 1000, 1000) for n in range(7)]
        paragraphs = format_transcript(cues, "CLEAN_TEXT").split("\n\n")
        assert len(paragraphs) == 2
        assert paragraphs[1] == "Sentence 5. Sentence 6."

    def test_empty_transcript_rejected(self):
        with pytest.raises(ValueError):
            format_transcript([], "SRT")


class TestFormatMetadata:

    def test_normalize_format(self):
        assert normalize_format(" srt ") == "SRT"
        assert normalize_format("") == "TXT"

    def test_file_extension(self):
        assert file_extension("srt") == "srt"
        assert file_extension("CLEAN_TEXT") == "txt"
        assert file_extension("JSON") == "json"
        assert file_extension("unknown") == "txt"

    def test_media_type(self):
        assert media_type("SRT") == "application/x-subrip; charset=utf-8"
        assert media_type("PARAGRAPH") == "text/plain; charset=utf-8"
