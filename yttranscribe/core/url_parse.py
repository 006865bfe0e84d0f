"""
Video reference and language normalization.
"""

import re
from urllib.parse import urlparse, parse_qs

from yttranscribe.core.constants import (
    YOUTUBE_URL_PATTERNS, VIDEO_ID_RE, WATCH_URL_TEMPLATE, LANGUAGE_ALIASES, ErrorCode,
)
from yttranscribe.core.error_codes import TranscribeError


def extract_video_id(url: str) -> str | None:
    """
    Extract the 11-character video_id from a YouTube URL.
    Returns None if the URL is not a valid YouTube URL.
    """
    url = url.strip()
    if not url:
        return None

    for pattern in YOUTUBE_URL_PATTERNS:
        m = re.search(pattern, url)
        if m:
            return m.group(1)

    # Fallback: parse query string for 'v' parameter
    parsed = urlparse(url)
    if 'youtube.com' in parsed.netloc or 'youtu.be' in parsed.netloc:
        v = parse_qs(parsed.query).get('v', [None])[0]
        if v and re.match(VIDEO_ID_RE, v):
            return v

    return None


def resolve_video_url(ref: str | None) -> str:
    """
    Turn a caller-supplied video reference into a fetchable URL.
    Accepts full URLs and bare video ids. Raises TranscribeError when empty.
    """
    if ref is None or not ref.strip():
        raise TranscribeError(ErrorCode.VALIDATION, "url required")

    ref = ref.strip()
    if re.match(VIDEO_ID_RE, ref):
        return WATCH_URL_TEMPLATE.format(video_id=ref)

    video_id = extract_video_id(ref)
    if video_id:
        return WATCH_URL_TEMPLATE.format(video_id=video_id)

    # Not a YouTube link; hand it to the extractor as-is
    return ref


def normalize_language(lang: str | None) -> str | None:
    """
    Map a loose language name to a 2-letter code.
    Known names map via LANGUAGE_ALIASES, other 2-letter codes pass through,
    anything else is None.
    """
    if lang is None or not lang.strip():
        return None
    lang = lang.strip().lower()
    if lang in LANGUAGE_ALIASES:
        return LANGUAGE_ALIASES[lang]
    return lang if len(lang) == 2 else None
