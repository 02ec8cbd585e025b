# marketplace/core/logging.py
import sys

from loguru import logger

from marketplace.core.config import get_settings

_LOGGING_CONFIGURED = False


def configure_logging() -> None:
    """Install loguru sinks once per process."""

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    settings = get_settings()
    level = settings.log_level.upper()

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, rotation="10 MB", retention=5, level=level, encoding="utf-8")

    _LOGGING_CONFIGURED = True
