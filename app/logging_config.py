# app/logging_config.py
import sys

from loguru import logger
from app.config import settings


def setup_logging(level: str = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.LOG_LEVEL).upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}",
    )
