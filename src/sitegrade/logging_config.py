"""Logging configuration for the site auditor."""

import logging
import sys
from pathlib import Path
from typing import Optional

from sitegrade.config import settings

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Transport libraries log every request at INFO
NOISY_LOGGERS = ('httpx', 'httpcore', 'asyncio')


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """Configure the root logger for an audit run.

    Crawl progress is logged at INFO, fetch failures at WARNING and
    per-link check failures at DEBUG, so INFO is the usual level for CI.

    Args:
        level: Log level name, case-insensitive; defaults to SITEGRADE_LOG_LEVEL
        log_file: Optional log file path; defaults to SITEGRADE_LOG_FILE
        format_string: Optional custom format string
    """
    numeric_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    log_file = log_file or settings.LOG_FILE

    # stdout stays free for JSON reports
    handlers = [logging.StreamHandler(sys.stderr)]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=numeric_level,
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``sitegrade`` namespace.

    Args:
        name: Logger name; bare names such as ``"audit"`` are prefixed

    Returns:
        Logger instance
    """
    if name != "sitegrade" and not name.startswith("sitegrade."):
        name = f"sitegrade.{name}"
    return logging.getLogger(name)
