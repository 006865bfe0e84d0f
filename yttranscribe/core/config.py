"""
Service configuration.
Read from the process environment (and a local .env file) once per app instance.
"""

import logging
import os
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from yttranscribe.core.constants import (
    CaptionMode, CaptionSession, DEFAULT_SCRATCH_DIR, DEFAULT_MAX_BODY_BYTES,
    DEFAULT_HOST, DEFAULT_PORT, SPEECH_API_BASE, SPEECH_MODEL,
)

logger = logging.getLogger(__name__)

# Environment variable → config key
_ENV_KEYS = {
    'OPENAI_API_KEY': 'openai_api_key',
    'YT_COOKIES_B64': 'cookies_b64',
    'CAPTION_MODE': 'caption_mode',
    'CAPTION_SESSION': 'caption_session',
    'MAX_BODY_BYTES': 'max_body_bytes',
    'SCRATCH_DIR': 'scratch_dir',
    'SPEECH_MODEL': 'speech_model',
    'SPEECH_API_BASE': 'speech_api_base',
    'HOST': 'host',
    'PORT': 'port',
    'LOG_LEVEL': 'log_level',
}

_DEFAULTS = {
    'openai_api_key': None,
    'cookies_b64': None,
    'caption_mode': CaptionMode.FALLBACK,
    'caption_session': CaptionSession.COOKIES,
    'max_body_bytes': DEFAULT_MAX_BODY_BYTES,
    'scratch_dir': str(DEFAULT_SCRATCH_DIR),
    'speech_model': SPEECH_MODEL,
    'speech_api_base': SPEECH_API_BASE,
    'host': DEFAULT_HOST,
    'port': DEFAULT_PORT,
    'log_level': 'INFO',
}

_SIZE_SUFFIXES = {'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}


def parse_size(value) -> int:
    """Parse '1GB', '500MB', '2048' style sizes into bytes."""
    if isinstance(value, int):
        return value
    text = str(value).strip().upper()
    for suffix, factor in _SIZE_SUFFIXES.items():
        if text.endswith(suffix):
            return int(float(text[:-len(suffix)]) * factor)
    return int(text)


class ServiceConfig:
    """Read-only settings shared by every request."""

    def __init__(self, values: Mapping | None = None):
        self._data: dict = dict(_DEFAULTS)
        for key, value in (values or {}).items():
            if key not in _DEFAULTS:
                logger.warning("Unknown config key %r ignored", key)
                continue
            self._data[key] = self._validate(key, value)

    @classmethod
    def from_env(cls, environ: Mapping | None = None, dotenv: bool = True) -> "ServiceConfig":
        """Build config from environment variables (os.environ by default)."""
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ
        values = {}
        for env_name, key in _ENV_KEYS.items():
            raw = environ.get(env_name)
            if raw is not None and raw.strip() != "":
                values[key] = raw.strip()
        return cls(values)

    def _validate(self, key: str, value):
        """Validate and coerce config values; bad values fall back to defaults."""
        if key == 'caption_mode':
            value = str(value).lower()
            if value not in (CaptionMode.FALLBACK, CaptionMode.CAPTION_ONLY):
                logger.warning("Invalid caption_mode %r — using %s", value, CaptionMode.FALLBACK)
                return CaptionMode.FALLBACK
            return value

        if key == 'caption_session':
            value = str(value).lower()
            if value not in (CaptionSession.COOKIES, CaptionSession.ANONYMOUS):
                logger.warning("Invalid caption_session %r — using %s", value, CaptionSession.COOKIES)
                return CaptionSession.COOKIES
            return value

        if key == 'max_body_bytes':
            try:
                size = parse_size(value)
            except (TypeError, ValueError):
                logger.warning("Invalid max_body_bytes %r — using default", value)
                return DEFAULT_MAX_BODY_BYTES
            if size <= 0:
                logger.warning("Non-positive max_body_bytes %r — using default", value)
                return DEFAULT_MAX_BODY_BYTES
            return size

        if key == 'port':
            try:
                port = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid port %r — using %d", value, DEFAULT_PORT)
                return DEFAULT_PORT
            return port if 0 < port < 65536 else DEFAULT_PORT

        if key == 'log_level':
            return str(value).upper()

        return value

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def as_dict(self) -> dict:
        return dict(self._data)

    @property
    def openai_api_key(self) -> str | None:
        return self._data['openai_api_key']

    @property
    def cookies_b64(self) -> str | None:
        return self._data['cookies_b64']

    @property
    def caption_mode(self) -> str:
        return self._data['caption_mode']

    @property
    def caption_only(self) -> bool:
        return self._data['caption_mode'] == CaptionMode.CAPTION_ONLY

    @property
    def caption_session(self) -> str:
        return self._data['caption_session']

    @property
    def max_body_bytes(self) -> int:
        return self._data['max_body_bytes']

    @property
    def scratch_dir(self) -> Path:
        return Path(self._data['scratch_dir'])

    @property
    def speech_model(self) -> str:
        return self._data['speech_model']

    @property
    def speech_api_base(self) -> str:
        return self._data['speech_api_base'].rstrip('/')

    @property
    def host(self) -> str:
        return self._data['host']

    @property
    def port(self) -> int:
        return self._data['port']

    @property
    def log_level(self) -> str:
        return self._data['log_level']
