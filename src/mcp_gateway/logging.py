"""Logging configuration for the MCP gateway using loguru."""

import sys
from pathlib import Path

from loguru import logger


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> None:
    """
    Configure loguru to log to stderr and ~/.mcp-gateway/logs.

    Args:
        log_level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for rotated log files
    """
    # Remove default handler
    logger.remove()

    if log_dir is None:
        log_dir = Path.home() / ".mcp-gateway" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        level=log_level,
        colorize=True,
    )

    logger.add(
        log_dir / "gateway_{time:YYYY-MM-DD}.log",
        rotation="00:00",  # Rotate at midnight
        retention="30 days",
        level=log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )

    logger.debug("Logging initialized. Logs are stored in: {}", log_dir)
