"""
Structured Logging Utilities for the RBAC admin engine
Plain or JSON log lines for the loggers under the rbac_admin namespace
"""

import json
import logging
from datetime import datetime, UTC
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "rbac_admin"
PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class StructuredLogFormatter(logging.Formatter):
    """
    One JSON object per record

    Context passed through log_with_context() is merged into the top level,
    so a denied check or a cascading delete can be filtered by role_id,
    user_id, etc.

    Usage:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredLogFormatter())
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            entry.update(context)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _stream_handler(structured: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredLogFormatter() if structured else logging.Formatter(PLAIN_FORMAT))
    return handler


def get_logger(name: str, structured: bool = False) -> logging.Logger:
    """
    Logger with its own JSON handler when structured is set

    Loggers under rbac_admin normally just propagate to the package logger
    set up by configure_logging(); use structured=True for a standalone
    JSON stream (e.g. an audit tap on rbac_admin.permissions.engine).
    """
    logger = logging.getLogger(name)
    if structured and not logger.handlers:
        logger.addHandler(_stream_handler(structured=True))
        logger.propagate = False
    return logger


def configure_logging(settings) -> logging.Logger:
    """
    Install one handler on the package logger.

    Calling again replaces the handler, it never stacks.

    Args:
        settings: RBACSettings (log_level, structured_logging)

    Returns:
        The rbac_admin logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    logger.addHandler(_stream_handler(settings.structured_logging))
    logger.setLevel(settings.log_level.upper())
    logger.propagate = False
    return logger


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    extra: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log message with context fields attached to the record

    Usage:
        log_with_context(logger, "info", "Deleted role role_abc", {"role_id": "role_abc"})
    """
    getattr(logger, level.lower())(message, extra={"context": extra or {}})
