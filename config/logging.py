#!/usr/bin/env python3
"""
Drive Cleaner - structlog configuration.

Centralised structlog configuration for structured JSON logging.

Usage:
    from config.logging import configure_logging

    # At application start
    configure_logging()

    # In modules
    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("message", key=value)
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, WrappedLogger


def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to every log line.

    Adds:
    - app: "drive-cleaner"
    - environment: value of APP_ENV (default "development")
    """
    event_dict["app"] = "drive-cleaner"
    event_dict["environment"] = os.getenv("APP_ENV", "development")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    enable_colors: bool = False,
) -> None:
    """
    Configure structlog for Drive Cleaner.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, JSON lines. If False, human readable (dev)
        enable_colors: If True, colorised console output (dev only)

    Example:
        >>> configure_logging(level="DEBUG", json_format=False, enable_colors=True)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=enable_colors))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Auto-configuration on import, JSON by default
try:
    log_level = os.getenv("LOG_LEVEL", "INFO")
    json_logs = os.getenv("LOG_FORMAT", "json") == "json"

    configure_logging(level=log_level, json_format=json_logs)
except Exception as e:
    print(f"Warning: structlog auto-config failed: {e}", file=sys.stderr)
    logging.basicConfig(level=logging.INFO)
