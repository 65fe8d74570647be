"""Logging setup for the mcpserve process."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: int = logging.INFO,
    console_level: int = logging.WARNING,
    log_dir: Path | None = None,
) -> Path | None:
    """Configure logging for the mcpserve namespace.

    Console output always goes to stderr, never stdout, so it cannot corrupt
    the stdio transport's protocol stream. When ``log_dir`` is given, logs are
    also written to ``{log_dir}/server.log`` with automatic rotation (max 5MB
    per file, 3 backup files).

    Args:
        level: Logging level for file output (default INFO).
        console_level: Logging level for stderr output (default WARNING).
        log_dir: Directory for server.log. Created if it doesn't exist.

    Returns:
        Path to the server.log file, or None when logging to stderr only.

    Example:
        log_file = configure_logging(log_dir=Path(".mcpserve/logs"))
        # Now INFO+ logs from mcpserve.* go to .mcpserve/logs/server.log
    """
    mcpserve_logger = logging.getLogger("mcpserve")

    # Remove any existing handlers to avoid duplicates on reconfigure
    for handler in list(mcpserve_logger.handlers):
        mcpserve_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    mcpserve_logger.addHandler(console_handler)

    log_file: Path | None = None
    effective_level = console_level
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "server.log"

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        mcpserve_logger.addHandler(file_handler)
        effective_level = min(level, console_level)

    mcpserve_logger.setLevel(effective_level)

    # Don't propagate to root logger
    mcpserve_logger.propagate = False

    if log_file is not None:
        logger.info("Server logging configured: %s", log_file)
    return log_file
