"""
Shared logging utilities for the Sanctions Risk Screening Engine

SECURITY: Names and other user-supplied values are sanitized before they
reach a log line to prevent log injection.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from config_manager import LoggingConfig

logger = logging.getLogger(__name__)


def sanitize_for_logging(text: Optional[str], max_length: int = 500) -> str:
    """Sanitize user input for safe logging, preventing log injection

    Removes newlines, carriage returns, and other control characters
    that could be used to inject fake log entries.

    Args:
        text: User input text
        max_length: Maximum length kept

    Returns:
        Sanitized text safe for logging
    """
    if not text:
        return ''
    sanitized = re.sub(r'[\r\n\x00-\x1f\x7f-\x9f]', ' ', str(text))
    sanitized = re.sub(r'\s+', ' ', sanitized).strip()
    return sanitized[:max_length] if len(sanitized) > max_length else sanitized


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure root logging from the logging section of config.yaml

    Args:
        config: Logging configuration, defaults are used when omitted
    """
    config = config or LoggingConfig()

    handlers = []
    if config.console:
        handlers.append(logging.StreamHandler())
    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

    level = getattr(logging, str(config.level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers or None,
        force=True
    )
    logger.debug("Logging configured at level %s", logging.getLevelName(level))
