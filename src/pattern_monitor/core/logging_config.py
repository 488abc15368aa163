"""
Pattern Monitor Logging Configuration
=====================================
Centralized logging configuration using loguru.

Provides:
  - configure_logging(): Setup function called at process startup
  - JSON log format when LOG_FORMAT=json environment variable is set
  - component_logger(): logger bound with the fixed component name

Usage:
    from pattern_monitor.core.logging_config import configure_logging, component_logger

    configure_logging(level="INFO", json_format=False)

    log = component_logger("pattern-monitor")
    log.info("Message")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from loguru import logger

# Track if logging has been configured
_CONFIGURED = False


def configure_logging(
    level: Optional[str] = "INFO",
    json_format: Optional[bool] = None,
    *,
    sink: Optional[str] = None,
    enqueue: bool = True,
) -> None:
    """
    Configure loguru logging for the pattern monitor.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, use JSON format. If None, check LOG_FORMAT env var.
        sink: Optional file path for log output. If None, logs to stderr.
        enqueue: Route records through a background thread (thread-safe sinks).

    Environment:
        LOG_FORMAT: Set to "json" to enable JSON formatted logs.
        LOG_LEVEL: Override log level if not specified.
    """
    global _CONFIGURED

    if json_format is None:
        json_format = os.environ.get("LOG_FORMAT", "").lower() == "json"

    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")

    logger.remove()

    log_sink = sink if sink else sys.stderr

    if json_format:
        # serialize=True emits one JSON object per record, extras included
        logger.add(
            log_sink,
            level=level.upper(),
            serialize=True,
            enqueue=enqueue,
            backtrace=False,
            diagnose=False,
        )
    else:
        format_str = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<magenta>{extra[component]}</magenta> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )
        logger.configure(extra={"component": "-"})
        logger.add(
            log_sink,
            level=level.upper(),
            format=format_str,
            colorize=sink is None,
            enqueue=enqueue,  # Thread-safe
            backtrace=True,
            diagnose=False,
        )

    _intercept_standard_logging(level)

    _CONFIGURED = True
    logger.debug(f"Logging configured: level={level}, json_format={json_format}")


def _intercept_standard_logging(level: str) -> None:
    """
    Redirect standard library logging (redis, asyncio) to loguru.
    """

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            try:
                log_level = logger.level(record.levelname).name
            except ValueError:
                log_level = record.levelno

            frame, depth = logging.currentframe(), 2
            while frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back  # type: ignore
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(
                log_level, record.getMessage()
            )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ["redis", "asyncio"]:
        logging.getLogger(logger_name).setLevel(level.upper())


def component_logger(component: str):
    """
    Get a loguru logger bound to a fixed component name.

    Records carry ``extra["component"]`` so host-facing events can be
    filtered by component regardless of the emitting module.
    """
    return logger.bind(component=component)


def is_configured() -> bool:
    return _CONFIGURED


__all__ = ["configure_logging", "component_logger", "is_configured", "logger"]
