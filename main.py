#!/usr/bin/env python3
"""
yttranscribe — HTTP service entry point.
Serves the transcription API with uvicorn.
"""

import sys
import logging
import traceback
from datetime import datetime

import uvicorn

from yttranscribe.core.config import ServiceConfig
from yttranscribe.core.constants import APP_NAME, APP_VERSION

logger = logging.getLogger(APP_NAME)


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def main():
    config = ServiceConfig.from_env()
    setup_logging(config.log_level)

    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("Python: %s", sys.executable)
    logger.info("Caption mode: %s (session: %s)", config.caption_mode, config.caption_session)
    logger.info("Cookies configured: %s", bool(config.cookies_b64))
    logger.info("Speech API key configured: %s", bool(config.openai_api_key))
    logger.info("=" * 60)

    try:
        from yttranscribe.server.app import create_app
        app = create_app(config)
        uvicorn.run(
            app,
            host=config.host,
            port=config.port,
            proxy_headers=True,
            forwarded_allow_ips="*",
            log_config=None,
        )
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        logger.critical("Fatal error: %s\n%s", error_msg, traceback.format_exc())
        sys.exit(1)


if __name__ == "__main__":
    main()
