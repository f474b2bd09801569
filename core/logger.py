#!/usr/bin/env python3
"""
Service logger setup

Configures stdlib logging once per service entry point. Library modules only
ever call ``logging.getLogger(__name__)``.
"""
import logging
import sys
from typing import Optional

from core.config import LoggingConfig

_HANDLER_TAG = "_pfx_service_handler"


def _tag(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG, True)
    return handler


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure root handlers for a service and return its logger.

    Args:
        service_name: Logger name, usually the service package name
        level: Overrides the configured log level
        config: Logging configuration (loaded from env if omitted)

    Returns:
        Logger named after the service
    """
    config = config or LoggingConfig.from_env()
    log_level = (level or config.log_level or "INFO").upper()

    root = logging.getLogger()
    # Several services may share one process; root handlers are installed once
    if not any(getattr(h, _HANDLER_TAG, False) for h in root.handlers):
        formatter = logging.Formatter(config.log_format)

        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(_tag(console))

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(_tag(file_handler))

    root.setLevel(log_level)

    for library, library_level in config.library_levels.items():
        logging.getLogger(library).setLevel(library_level)

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger


__all__ = ["setup_service_logger"]
