"""Configure logging for the command line client."""
import logging
import sys
import logging.config
from typing import Any, Dict


def setup_logging(level: str = "WARNING") -> None:
    """Set up logging configuration.

    Logs go to stderr so they never interleave with the conversation on stdout.
    """
    log_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": sys.stderr,
            },
        },
        "loggers": {
            "": {  # Root logger
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": True,
            },
            "toolbridge": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(log_config)

    logger = logging.getLogger(__name__)
    logger.debug("Client logging configured successfully")
