"""Logging configuration for the proxy server.

This module provides centralized logging configuration using Loguru.
It sets up logging to both stderr and a rotating file. The log directory
defaults to ``~/.gfn-socks-proxy/logs`` and can be moved with the
``GFN_SOCKS_LOG_DIR`` environment variable.
"""

import os
import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path(os.environ.get("GFN_SOCKS_LOG_DIR", Path.home() / ".gfn-socks-proxy" / "logs"))

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {extra} - {message}"


def configure_logging(level: str = "INFO", *, log_dir: Path | None = None) -> None:
    """Replace loguru's handlers with the console and file sinks.

    Args:
        level: Minimum level for the console sink
        log_dir: Directory for ``proxy.log`` (default: ``LOG_DIR``)
    """
    directory = log_dir or LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)

    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        backtrace=True,
        diagnose=level == "DEBUG",
    )

    # File handler with rotation
    logger.add(
        directory / "proxy.log",
        rotation="10 MB",
        retention="1 week",
        compression="zip",
        format=FILE_FORMAT,
        level="DEBUG",
        backtrace=True,
        diagnose=False,
        enqueue=True,
    )


__all__ = ["configure_logging", "logger", "LOG_DIR"]
