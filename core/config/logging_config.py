#!/usr/bin/env python3
"""Logging configuration"""
import os
from dataclasses import dataclass, field
from typing import Dict

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _bool(val: str, default: bool) -> bool:
    if not val:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class LoggingConfig:
    """Logging configuration for service entry points"""
    log_level: str = "INFO"
    log_format: str = DEFAULT_FORMAT
    log_file: str = ""
    enable_console: bool = True

    # Client libraries logging at a coarser level than the services
    library_levels: Dict[str, str] = field(
        default_factory=lambda: {"httpx": "WARNING", "asyncpg": "WARNING", "uvicorn.access": "INFO"}
    )

    environment: str = "development"

    @classmethod
    def from_env(cls) -> 'LoggingConfig':
        """Load logging config from environment variables"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        config = cls(
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if env == "development" else "INFO"),
            log_format=os.getenv("LOG_FORMAT", DEFAULT_FORMAT),
            log_file=os.getenv("LOG_FILE", ""),
            enable_console=_bool(os.getenv("LOG_CONSOLE", ""), True),
            environment=env,
        )
        # LIBRARY_LOG_LEVELS=httpx:INFO,asyncpg:DEBUG
        for item in os.getenv("LIBRARY_LOG_LEVELS", "").split(","):
            name, _, level = item.partition(":")
            if name.strip() and level.strip():
                config.library_levels[name.strip()] = level.strip().upper()
        return config
