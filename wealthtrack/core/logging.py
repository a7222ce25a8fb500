"""Process-wide logging configuration."""

import logging
import sys

_CONFIGURED = False

NOISY_LOGGERS = ("sqlalchemy", "aiosqlite", "asyncpg", "httpx", "httpcore")


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure logging to output to stdout with proper formatting.

    ``level`` accepts a ``logging`` constant or a level name such as ``"DEBUG"``.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root_logger = logging.getLogger()
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Database drivers and the HTTP client log every statement and request at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _CONFIGURED = True
