"""
Logging setup for sub_events.

The library logs through loguru but stays disabled until the host
application calls setup_logger().
"""
import sys
from typing import Optional

from loguru import logger

from sub_events.config import settings

PACKAGE = "sub_events"


def setup_logger(app_name: str = PACKAGE, log_level: Optional[str] = None):
    """
    Enables sub_events logging and installs the sinks.

    Args:
        app_name: Base name for the log files
        log_level: Level (DEBUG, INFO, WARNING, ERROR); defaults to settings.log_level
    """
    level = (log_level or settings.log_level).upper()

    # Drop the default stderr handler
    logger.remove()

    # Console output with colors
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True
    )

    if settings.log_to_file:
        log_dir = settings.log_path
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / f"{app_name}.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
            level=level,
            rotation="10 MB",
            retention="1 week",
            compression="zip"
        )

        # Separate file for subscriber failures
        logger.add(
            log_dir / f"{app_name}_errors.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
            level="ERROR",
            rotation="10 MB",
            retention="1 month",
            compression="zip"
        )

    logger.enable(PACKAGE)
    logger.info(f"Logger initialized for {app_name}")

    return logger


def get_logger(name: str = None):
    """
    Returns the logger for a module.

    Args:
        name: Module name (usually __name__)
    """
    return logger
