"""
Centralized logging configuration with structured logging support.
"""
import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import Settings

# Request ID for correlating every log entry written while serving one request
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

STRUCTURED_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "provider",
    "operation",
)

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "google_genai")


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for production logging.

    Produces structured log entries with consistent fields for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: Dict[str, Any] = {
            "timestamp": timestamp.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_context.get()
        if request_id:
            log_entry["request_id"] = request_id

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.levelno >= logging.ERROR:
            log_entry["source"] = f"{record.pathname}:{record.lineno}"

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Build the ``dictConfig`` mapping for the given settings."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    is_production = settings.env == "production"

    loggers: Dict[str, Any] = {
        "assessment_gateway": {
            "level": log_level,
            "handlers": ["console"],
            "propagate": False,
        },
        "uvicorn.access": {
            "level": logging.WARNING if settings.debug else logging.INFO,
            "handlers": ["console"],
            "propagate": False,
        },
    }
    for name in NOISY_LOGGERS:
        loggers[name] = {
            "level": logging.WARNING,
            "handlers": ["console"],
            "propagate": False,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": JSONFormatter,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "json" if is_production else "default",
                "stream": sys.stdout,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
        "loggers": loggers,
    }


def setup_logging(settings: Settings) -> None:
    """
    Configure application-wide logging.

    JSON output in production, human-readable output otherwise.

    Args:
        settings: Loaded application settings
    """
    logging.config.dictConfig(build_logging_config(settings))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
