"""
Centralized error handling for the BoondManager sync pipeline.

Provides decorators and utilities for consistent error handling,
logging, and per-record error tracking across import/export/sync runs.
"""

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def sync_operation(
    operation_name: str,
    stage: str = "unknown",
    critical: bool = False,
    log_success: bool = True,
    fallback_value: Any = None,
    reraise: bool = False,
):
    """
    Decorator for sync operations with consistent error handling.

    Provides:
    - INFO logging on success (if log_success=True)
    - ERROR logging with stack trace on failure for critical operations
    - WARNING logging on failure for non-critical operations
    - Optional re-raising of exceptions

    Args:
        operation_name: Human-readable operation name (e.g., "fetch all data")
        stage: Stage identifier (e.g., "sync", "export")
        critical: If True, logs at ERROR level with stack trace; if False, WARNING
        log_success: If True, logs successful completion at INFO level
        fallback_value: Value to return on failure (default: None)
        reraise: If True, re-raises the exception after logging

    Usage:
        @sync_operation("fetch all data", stage="sync", critical=True, reraise=True)
        def fetch_all_data(self, environment):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            logger = logging.getLogger(func.__module__)
            try:
                result = func(*args, **kwargs)
                if log_success:
                    logger.info(f"[{stage}] [{operation_name}] ✓ Completed successfully")
                return result
            except Exception as e:
                log_level = logging.ERROR if critical else logging.WARNING
                logger.log(
                    log_level,
                    f"[{stage}] [{operation_name}] ✗ Failed: {e}",
                    exc_info=critical,
                )
                if reraise:
                    raise
                return fallback_value

        return wrapper

    return decorator


def log_on_exception(
    logger: logging.Logger,
    operation: str,
    level: int = logging.WARNING,
    include_traceback: bool = False,
):
    """
    Context manager for logging exceptions without swallowing them.

    Usage:
        with log_on_exception(logger, "sandbox update", level=logging.INFO):
            client.update_entity(...)

    Args:
        logger: Logger instance to use
        operation: Operation description for the log message
        level: Log level (default: WARNING)
        include_traceback: Whether to include stack trace in log
    """

    class ExceptionLogger:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None:
                logger.log(
                    level,
                    f"[{operation}] Failed: {exc_val}",
                    exc_info=include_traceback,
                )
            return False

    return ExceptionLogger()


def format_record_error(label: str, record_id: Any, error: Exception) -> str:
    """Format a per-record failure as "<label> <id>: <message>"."""
    message = str(error) or type(error).__name__
    return f"{label} {record_id}: {message}"
