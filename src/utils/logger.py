"""
Bikepark Reports - Structured Logging
Provides JSON-formatted logging for log aggregation queries.
"""

import logging
import sys
from pythonjsonlogger import jsonlogger

from .config import LOG_LEVEL, config


def setup_logger(name: str = __name__) -> logging.Logger:
    """
    Configure structured JSON logger.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(__name__)
        >>> logger.info("Cache update completed", extra={
        ...     "cache": "transactions",
        ...     "duration_seconds": 14.2,
        ...     "rows": 1247
        ... })
    """
    logger = logging.getLogger(name)

    # Prevent duplicate handlers; ancestors' handlers do not count
    if logger.handlers:
        return logger

    level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


# Global logger instance
logger = setup_logger('bikepark_reports')


def log_cache_action_start(cache_name: str, action: str, window: str = None):
    """Log the start of a cache lifecycle action."""
    logger.info("Cache action started", extra={
        "event_type": "cache_action_start",
        "cache": cache_name,
        "action": action,
        "window": window,
        "environment": config.environment
    })


def log_cache_action_complete(cache_name: str, action: str, duration_seconds: float, rows: int = None):
    """Log successful cache action completion."""
    logger.info("Cache action completed", extra={
        "event_type": "cache_action_complete",
        "cache": cache_name,
        "action": action,
        "duration_seconds": duration_seconds,
        "rows": rows
    })


def log_cache_action_error(error: Exception, cache_name: str, action: str):
    """Log cache action error with context."""
    logger.error("Cache action failed", extra={
        "event_type": "cache_action_error",
        "cache": cache_name,
        "action": action,
        "error_type": type(error).__name__,
        "error_message": str(error)
    }, exc_info=True)


def log_report_request(report_type: str, grouping: str, bikepark_count: int, use_cache: bool):
    """Log a report query request."""
    logger.info("Report requested", extra={
        "event_type": "report_request",
        "report_type": report_type,
        "grouping": grouping,
        "bikepark_count": bikepark_count,
        "use_cache": use_cache
    })


def log_api_request(method: str, path: str, status_code: int, duration_ms: float):
    """Log API request metrics."""
    logger.info("API request", extra={
        "event_type": "api_request",
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms
    })


def log_database_error(error: Exception, query_context: str = None):
    """Log database error with context."""
    logger.error("Database error", extra={
        "event_type": "database_error",
        "error_type": type(error).__name__,
        "error_message": str(error),
        "query_context": query_context
    }, exc_info=True)
