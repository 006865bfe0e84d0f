"""
Diagnostics: library versions and configuration checks for /health.
"""

import logging

from yt_dlp.version import __version__ as ytdlp_version

from yttranscribe.core.config import ServiceConfig
from yttranscribe.core.constants import APP_VERSION
from yttranscribe.core.security_utils import mask_secret

logger = logging.getLogger(__name__)


def get_diagnostics(config: ServiceConfig) -> dict:
    """Gather diagnostic information. Secrets are masked."""
    return {
        "status": "ok",
        "version": APP_VERSION,
        "caption_mode": config.caption_mode,
        "caption_session": config.caption_session,
        "cookies_configured": bool(config.cookies_b64),
        "api_key_configured": bool(config.openai_api_key),
        "api_key": mask_secret(config.openai_api_key),
        "ytdlp_version": ytdlp_version,
        "max_body_bytes": config.max_body_bytes,
    }
