"""
Logging configuration.

All modules log through ``loguru.logger``; this module only decides where the
records go and how they look.
"""

import sys

from loguru import logger

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Replace loguru's default sink with the application sink.

    Args:
        level: Minimum level to emit
        json: Emit serialized JSON records (with bound context) instead of text
    """
    logger.remove()
    if json:
        logger.add(sys.stderr, level=level.upper(), serialize=True)
    else:
        logger.add(sys.stderr, level=level.upper(), format=_CONSOLE_FORMAT)
    logger.debug(f"Logging configured: level={level.upper()}, json={json}")
