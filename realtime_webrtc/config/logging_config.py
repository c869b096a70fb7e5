"""
Logging setup shared by the relay server and the command line client.

Records go to stdout and, unless disabled, to a size-rotated file. The
WebRTC stack (aiortc, aioice) logs every ICE check and RTP packet at DEBUG,
so those loggers are held at WARNING unless the application itself runs at
DEBUG.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from realtime_webrtc.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LEVEL = "INFO"

# An empty REALTIME_LOG_FILE turns file logging off
LOG_DIR = Path(os.getenv("REALTIME_LOG_DIR", "logs"))
LOG_FILE_NAME = os.getenv("REALTIME_LOG_FILE", "realtime_webrtc.log")
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

WEBRTC_LOGGERS = ("aiortc", "aioice")


def resolve_level(level: Union[str, int, None] = None) -> int:
    """
    Turn a level name or number into a logging level.

    ``None`` falls back to ``LOG_LEVEL`` from the environment. Unknown names
    resolve to INFO.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", DEFAULT_LEVEL)
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else logging.INFO


def _console_handler(formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    return handler


def _file_handler(formatter: logging.Formatter, log_dir: Path, file_name: str) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / file_name,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
    )
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: Union[str, int, None] = None,
    log_dir: Optional[Path] = None,
    file_name: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the application logger. Safe to call more than once.

    Args:
        level: Level name or number; defaults to the LOG_LEVEL environment variable
        log_dir: Directory for the rotating log file
        file_name: Log file name; an empty string disables file logging

    Returns:
        logging.Logger: The configured application logger
    """
    resolved = resolve_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    logger.addHandler(_console_handler(formatter))

    file_name = LOG_FILE_NAME if file_name is None else file_name
    if file_name:
        try:
            logger.addHandler(_file_handler(formatter, log_dir or LOG_DIR, file_name))
        except OSError as e:
            logger.warning(f"File logging disabled: {e}")

    logger.propagate = False

    webrtc_level = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for name in WEBRTC_LOGGERS:
        logging.getLogger(name).setLevel(webrtc_level)

    logger.debug(f"Logging configured at {logging.getLevelName(resolved)}")
    return logger
