"""
Logging configuration module.
Provides standardized logging setup using loguru.
"""

import os
import sys
from typing import Optional

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{function}:{line} - {message}"


def setup_logging(
    level: str = "INFO",
    format: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure loguru logger.

    Colors are disabled when NO_COLOR is set or LOGURU_COLORIZE is "false".

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Log message format
        log_file: Optional file path to write logs
    """
    logger.remove()

    use_colors = (
        os.getenv("NO_COLOR") is None
        and os.getenv("LOGURU_COLORIZE", "true").lower() != "false"
    )

    logger.add(
        sys.stderr,
        format=format,
        level=level,
        colorize=use_colors,
    )

    if log_file:
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"File logging enabled: {log_file}")


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """
    Mask a secret for log output, keeping only its edges.

    Args:
        value: Secret value (token, app secret)
        visible: Number of characters to keep at each end

    Returns:
        Masked representation, e.g. "EAAB...f9Zd"
    """
    if not value:
        return "<empty>"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"
