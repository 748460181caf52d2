"""
PURPOSE: Structured logging configuration and logger factory for the strategy core.
Uses structlog for JSON-formatted logs with automatic context binding.
"""

import logging

import structlog

from strategy_core.config.settings import settings


def setup_logging(log_level: str = settings.LOG_LEVEL, json_output: bool = settings.LOG_JSON) -> None:
    """
    PURPOSE: Configure structlog with timestamp, level, module, and event fields.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to settings.LOG_LEVEL.
        json_output: Render JSON lines when True, human-readable console output otherwise.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(module_name: str) -> structlog.BoundLogger:
    """
    PURPOSE: Return a bound logger with module context for structured logging.

    Args:
        module_name: The name of the module requesting the logger (e.g., "events.store").

    Returns:
        structlog.BoundLogger: Logger instance with module context bound.
    """
    return structlog.get_logger().bind(module=module_name)
