"""
Caption content parsing → ordered segment texts.
Supports WebVTT and YouTube's json3 timed-text format.
"""

import json
import re
import logging

logger = logging.getLogger(__name__)

# Regex patterns for VTT cleanup
_TIMESTAMP_RE = re.compile(
    r'^(?:\d{2}:)?\d{2}:\d{2}\.\d{3}\s*-->\s*(?:\d{2}:)?\d{2}:\d{2}\.\d{3}.*$'
)
_CUE_ID_RE = re.compile(r'^\d+$')
_HEADER_PREFIXES = ('WEBVTT', 'Kind:', 'Language:', 'NOTE', 'STYLE', 'REGION')
_HTML_TAG_RE = re.compile(r'<[^>]+>')
_WS_RE = re.compile(r'\s+')


def _clean(text: str) -> str:
    text = _HTML_TAG_RE.sub('', text)
    text = text.replace('&nbsp;', ' ').replace('&amp;', '&').replace('&lt;', '<').replace('&gt;', '>')
    return _WS_RE.sub(' ', text).strip()


def parse_vtt_segments(content: str) -> list[str]:
    """
    Split WebVTT content into cue texts in source order.
    Timestamps, cue ids, header/NOTE/STYLE blocks and markup are dropped.
    Rolling auto-caption repeats (same line as the previous cue) are collapsed.
    """
    segments = []
    prev_line = None

    for block in re.split(r'\n\s*\n', content.replace('\r\n', '\n')):
        lines = [ln.strip() for ln in block.strip().split('\n') if ln.strip()]
        if not lines:
            continue
        if lines[0].startswith(_HEADER_PREFIXES):
            continue

        texts = []
        for line in lines:
            if _TIMESTAMP_RE.match(line) or _CUE_ID_RE.match(line):
                continue
            cleaned = _clean(line)
            # VTT often repeats the previous line in the next cue
            if not cleaned or cleaned == prev_line:
                continue
            texts.append(cleaned)
            prev_line = cleaned

        segments.append(' '.join(texts))

    return segments


def parse_json3_segments(content: str) -> list[str]:
    """Extract event texts from YouTube json3 captions."""
    data = json.loads(content)
    segments = []
    for event in data.get('events', []):
        segs = event.get('segs')
        if not segs:
            continue
        segments.append(''.join(seg.get('utf8', '') for seg in segs))
    return segments


def parse_caption_segments(content: str, fmt: str) -> list[str]:
    """Dispatch on caption format ext."""
    if fmt == 'json3':
        return parse_json3_segments(content)
    if fmt == 'vtt':
        return parse_vtt_segments(content)
    raise ValueError(f"Unsupported caption format: {fmt}")


def join_segments(segments: list[str]) -> str | None:
    """
    Join non-blank segments with a single space, preserving order.
    Returns None when nothing is left.
    """
    text = ' '.join(s for s in segments if s and s.strip())
    return text if text.strip() else None
