"""
FeedPress Logging
=================

Console output is rendered by rich; the rotating log file holds one JSON
object per record. Pipeline context (component, feed, item, topic and
scheduled execution) travels on every record through component adapters
and is lifted to top-level JSON keys so runs can be filtered per feed or
per item.
"""

import json
import logging
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from rich.logging import RichHandler

ROOT_LOGGER = "feedpress"
CONTEXT_FIELDS = ("component", "feed_id", "item_id", "topic", "execution_id")

_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; context fields first, other extras under ``details``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        details = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS
        }
        if details:
            entry["details"] = details

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ComponentLogger(logging.LoggerAdapter):
    """Adapter that stamps its fixed context onto every record.

    Per-call ``extra`` values win over the fixed context.
    """

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger_for_component(component_name: str, **context: Optional[str]) -> ComponentLogger:
    """Logger for one FeedPress component.

    Args:
        component_name: Component name, used as the ``feedpress.<name>`` logger
        **context: Fixed context such as ``feed_id``, ``item_id`` or ``topic``;
            None values are dropped

    Returns:
        Adapter carrying the component context
    """
    fixed = {"component": component_name}
    fixed.update({key: value for key, value in context.items() if value is not None})
    return ComponentLogger(logging.getLogger(f"{ROOT_LOGGER}.{component_name}"), fixed)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/feedpress.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Install the FeedPress handlers on the ``feedpress`` logger.

    Reconfiguring replaces the previous handlers.

    Args:
        log_level: Level name for the ``feedpress`` logger
        log_file: Rotating JSON log file, or None/empty for no file
        enable_console: Emit records on the console
        structured_logging: JSON lines on the console instead of rich output
        max_file_size_mb: Rotation size of the log file
        backup_count: Rotated files kept
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if enable_console:
        if structured_logging:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(JsonLineFormatter())
        else:
            console_handler = RichHandler(show_path=False, rich_tracebacks=True, markup=False)
        logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JsonLineFormatter())
        logger.addHandler(file_handler)

    for noisy in ("aiohttp", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


class PerformanceLogger:
    """Times a block and logs its outcome with ``duration_seconds`` and ``success``."""

    def __init__(self, logger: logging.LoggerAdapter, operation: str, **context: Any):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.duration = 0.0
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration = time.perf_counter() - self._started
        extra = {
            **self.context,
            "duration_seconds": round(self.duration, 3),
            "success": exc_type is None,
        }
        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {self.duration:.2f}s", extra=extra)
        else:
            self.logger.error(
                f"{self.operation} failed after {self.duration:.2f}s: {exc_val}", extra=extra
            )
        return False
