"""Configure logging for the service."""
import logging
import sys
import logging.config
import uuid
from pythonjsonlogger import jsonlogger
from typing import Any, Dict
import os


class ColoredJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with colors for development."""

    COLORS = {
        'DEBUG': '\033[37m',  # White
        'INFO': '\033[32m',   # Green
        'WARNING': '\033[33m', # Yellow
        'ERROR': '\033[31m',  # Red
        'CRITICAL': '\033[41m' # Red background
    }
    RESET = '\033[0m'

    def format(self, record):
        record.message = record.getMessage()

        if os.getenv('ENV', 'development') == 'development':
            color = self.COLORS.get(record.levelname, '')
            record.message = f"{color}{record.message}{self.RESET}"

        return super().format(record)


class CorrelationFilter(logging.Filter):
    """Add correlation ID to log records."""
    def __init__(self, correlation_id: str):
        super().__init__()
        self.correlation_id = correlation_id

    def filter(self, record):
        record.correlation_id = self.correlation_id
        return True


def setup_logging(level: str = "INFO") -> str:
    """Set up JSON logging and return the process correlation id."""
    is_dev = os.getenv('ENV', 'development') == 'development'

    if is_dev:
        log_format = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        formatter_class = ColoredJsonFormatter
    else:
        log_format = "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s"
        formatter_class = jsonlogger.JsonFormatter

    correlation_id = str(uuid.uuid4())
    log_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation": {
                "()": f"{CorrelationFilter.__module__}.{CorrelationFilter.__name__}",
                "correlation_id": correlation_id,
            }
        },
        "formatters": {
            "standard": {
                "()": f"{formatter_class.__module__}.{formatter_class.__name__}",
                "fmt": log_format,
                "rename_fields": {
                    "levelname": "level",
                    "asctime": "timestamp"
                },
                "json_default": str,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "filters": ["correlation"],
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "": {  # Root logger
                "handlers": ["console"],
                "level": "WARNING",  # Keep third-party libraries quiet
                "propagate": True,
            },
            "toolbridge": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "mcp": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": ["console"],
                "level": "ERROR",
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(log_config)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured", extra={"correlation_id": correlation_id})
    return correlation_id
