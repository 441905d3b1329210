"""Runtime infrastructure for billsplit.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Collaborator endpoints via get_settings(), ServiceSettings

Usage:
    from billsplit.runtime import get_logger, get_settings

    logger = get_logger(__name__)
    settings = get_settings()
    print(settings.ocr_url, settings.llm_url)
"""

from billsplit.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    set_log_level,
)
from billsplit.runtime.settings import ServiceSettings, get_settings

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Settings
    "get_settings",
    "ServiceSettings",
]
