"""
Video metadata fetching via yt-dlp.
The caption and audio manifests both come from one extract_info call.
"""

import logging

import yt_dlp
from yt_dlp.utils import DownloadError

from yttranscribe.core.error_codes import TranscribeError
from yttranscribe.core.constants import ErrorCode
from yttranscribe.core.models import Session

logger = logging.getLogger(__name__)


def _ydl_options(session: Session) -> dict:
    opts = {
        'quiet': True,
        'no_warnings': True,
        'skip_download': True,
        'noplaylist': True,
    }
    if session.user_agent:
        opts['http_headers'] = {'User-Agent': session.user_agent}
    return opts


def fetch_metadata(session: Session, video_url: str) -> dict:
    """
    Fetch video metadata with yt-dlp, authenticating with the session's cookies.
    Returns the info dict ('formats', 'subtitles', 'automatic_captions', ...).
    """
    try:
        with yt_dlp.YoutubeDL(_ydl_options(session)) as ydl:
            for cookie in session.http.cookies:
                ydl.cookiejar.set_cookie(cookie)
            info = ydl.extract_info(video_url, download=False)
    except DownloadError as e:
        message = str(e)
        lowered = message.lower()
        if "video unavailable" in lowered or "is not available" in lowered:
            raise TranscribeError(ErrorCode.DOWNLOAD_FAILED, f"Video unavailable: {message[:200]}")
        if "geo" in lowered or "country" in lowered:
            raise TranscribeError(ErrorCode.DOWNLOAD_FAILED, f"Geo-blocked: {message[:200]}")
        if "sign in" in lowered or "age" in lowered or "consent" in lowered:
            raise TranscribeError(ErrorCode.DOWNLOAD_FAILED,
                                  f"Restricted content (login/age required): {message[:200]}")
        raise TranscribeError(ErrorCode.DOWNLOAD_FAILED, f"yt-dlp metadata fetch failed: {message[:300]}")

    if not info:
        raise TranscribeError(ErrorCode.DOWNLOAD_FAILED, "yt-dlp returned no metadata")

    return ydl.sanitize_info(info)
