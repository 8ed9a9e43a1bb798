"""
Logging for BoondManager sync runs.

Every import, export and sync step logs through a SyncRunLogger, which
tags messages with the run id, step and BoondManager environment:

    [run:1a2b3c4d] [sandbox] [export] [candidates] 12 created, 3 updated, 0 errors

The same context is attached to each LogRecord (record.run_id,
record.step, record.environment) so the json format can emit it as
separate fields. Progress messages can also be forwarded to a
callback, which is how the CLI and the workflow surface per-entity
results.

Supports a debug_mode flag for verbose logging (DEBUG_MODE=true or --verbose).
"""

import json
import logging
import os
import sys
from typing import Any, Callable, Dict, MutableMapping, Optional, Tuple


# Global debug mode flag - can be set via environment or CLI
_GLOBAL_DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"

# Context keys, in prefix order
CONTEXT_FIELDS = ("run_id", "environment", "step")


def set_global_debug_mode(enabled: bool) -> None:
    """Set global debug mode (used by the CLI --verbose flag)."""
    global _GLOBAL_DEBUG_MODE
    _GLOBAL_DEBUG_MODE = enabled


def is_debug_mode() -> bool:
    """Check if debug mode is enabled globally."""
    return _GLOBAL_DEBUG_MODE


class SyncRunLogger(logging.LoggerAdapter):
    """
    Logger adapter carrying the context of one sync run.

    bind() derives a logger for a narrower context (a workflow step, an
    environment) that shares the same callback. report() logs a progress
    message and hands it to the callback.
    """

    def __init__(
        self,
        logger: logging.Logger,
        context: Optional[Dict[str, Any]] = None,
        callback: Optional[Callable[[str], None]] = None,
    ):
        super().__init__(logger, {k: v for k, v in (context or {}).items() if v is not None})
        self.callback = callback

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self.extra)

    def bind(self, **context: Any) -> "SyncRunLogger":
        return SyncRunLogger(self.logger, {**self.extra, **context}, self.callback)

    def prefix(self) -> str:
        parts = []
        run_id = self.extra.get("run_id")
        if run_id:
            parts.append(f"[run:{str(run_id)[:8]}]")
        for key in CONTEXT_FIELDS[1:]:
            if self.extra.get(key):
                parts.append(f"[{self.extra[key]}]")
        return " ".join(parts)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        prefix = self.prefix()
        return (f"{prefix} {msg}" if prefix else msg), kwargs

    def report(self, message: str, level: int = logging.INFO) -> None:
        self.log(level, message)
        if self.callback:
            self.callback(message)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with the run context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure global logging settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Log format ("simple" or "json")
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Logs go to stderr so CLI JSON output on stdout stays parseable
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    if format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(
    name: str,
    run_id: Optional[str] = None,
    step: Optional[str] = None,
    environment: Optional[str] = None,
    callback: Optional[Callable[[str], None]] = None,
    debug_mode: Optional[bool] = None,
) -> SyncRunLogger:
    """
    Get a sync run logger.

    Args:
        name: Logger name (usually __name__)
        run_id: Workflow run identifier
        step: import, validate, export or sync
        environment: BoondManager environment the messages concern
        callback: Receives every report() message
        debug_mode: If True, enables DEBUG level. If None, uses global setting.
    """
    logger = logging.getLogger(name)
    if debug_mode if debug_mode is not None else is_debug_mode():
        logger.setLevel(logging.DEBUG)
    return SyncRunLogger(
        logger,
        {"run_id": run_id, "environment": environment, "step": step},
        callback,
    )
