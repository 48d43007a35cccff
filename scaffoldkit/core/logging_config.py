"""
Global logging configuration for scaffoldkit.

Features:
- Dynamic log level control via environment variable or config
- Structured JSON logging with timestamps
- Human-readable console output
- Context propagation via LogContext
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from scaffoldkit.core.config import get_config

MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
DEFAULT_LOG_LEVEL = os.getenv("SCAFFOLDKIT_LOG_LEVEL", "INFO")

_current_log_level = DEFAULT_LOG_LEVEL.upper()


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if getattr(record, "context", None):
            log_data["context"] = record.context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        base_msg = f"[{timestamp}] {color}{record.levelname:8}{self.RESET} | {record.name:30} | {record.getMessage()}"

        if getattr(record, "context", None):
            base_msg += f" | context={json.dumps(record.context, ensure_ascii=False, default=str)}"

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        return base_msg


class LogContext:
    """Context manager for adding context to logs."""

    _current_context: dict[str, Any] = {}

    def __init__(self, **kwargs: Any):
        self._new_context = kwargs
        self._old_context: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._old_context = LogContext._current_context.copy()
        LogContext._current_context = {**self._old_context, **self._new_context}
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        LogContext._current_context = self._old_context

    @classmethod
    def get_context(cls) -> dict[str, Any]:
        return cls._current_context.copy()


class ContextFilter(logging.Filter):
    """Filter that adds the active LogContext to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = dict(getattr(record, "context", None) or {})
        context.update(LogContext.get_context())
        record.context = context
        return True


def setup_logging(
    level: str | None = None,
    structured: bool | None = None,
    log_file: str | Path | None = None,
    logger_name: str = "scaffoldkit",
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL); defaults
            to the ``logging`` section of the global config
        structured: Emit JSON lines on the console instead of human output;
            defaults to the global config
        log_file: Optional path for a rotating JSON log file
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    global _current_log_level

    if level is None or structured is None:
        settings = get_config().logging
        level = level or settings.level
        structured = settings.structured if structured is None else structured

    if level:
        _current_log_level = level.upper()
    numeric_level = getattr(logging, _current_log_level, logging.INFO)

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter() if structured else HumanFormatter())
    console_handler.addFilter(ContextFilter())
    console_handler.setLevel(numeric_level)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=MAX_FILE_SIZE,
            backupCount=10,
            encoding="utf-8",
        )
        file_handler.setFormatter(StructuredFormatter())
        file_handler.addFilter(ContextFilter())
        file_handler.setLevel(numeric_level)
        logger.addHandler(file_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_log_level(level: str, logger_name: str = "scaffoldkit") -> None:
    """
    Dynamically set the log level.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Logger whose level and handlers are updated
    """
    global _current_log_level
    _current_log_level = level.upper()
    numeric_level = getattr(logging, _current_log_level, logging.INFO)

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)
    for handler in logger.handlers:
        handler.setLevel(numeric_level)


def get_log_level() -> str:
    return _current_log_level


@contextmanager
def log_context(**kwargs: Any):
    """
    Context manager for adding context to logs.

    Usage:
        with log_context(model="Post", operation="merge"):
            logger.info("Merging records")
    """
    with LogContext(**kwargs):
        yield
