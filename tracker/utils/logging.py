"""
Logging setup.

Configures loguru sinks for the indexer process and dramatiq workers.
"""

import sys
from pathlib import Path

from loguru import logger

from tracker.config.constants import LOG_FILE_PATH, LOG_RETENTION, LOG_ROTATION


def setup_logging(level: str = "INFO", log_file: str = LOG_FILE_PATH) -> None:
    """
    Configure stderr and rotating file sinks.

    Args:
        level: Minimum level for both sinks
        log_file: Path of the rotating log file
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
    )

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        level=level,
        rotation=LOG_ROTATION,
        retention=LOG_RETENTION,
        enqueue=True,
    )
    logger.info(f"Logging configured: level={level}, file={log_file}")
