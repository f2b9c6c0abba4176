"""
paysec - Structured Logging

JSON log formatting and dictConfig-based setup. Library modules only obtain
loggers with logging.getLogger(__name__); applications call configure_logging()
to install handlers.
"""

import copy
import json
import logging
import logging.config
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import LogFormat, PaySecConfig

# Attributes present on every LogRecord; anything else was passed via extra=
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON documents."""

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        event: Dict[str, Any] = {
            "timestamp": record.created,
            "iso_timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.include_context:
            context = {
                key: value
                for key, value in vars(record).items()
                if key not in _RESERVED_ATTRS and not key.startswith("_")
            }
            if context:
                event["context"] = context

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            event["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(event, ensure_ascii=False, default=str)


# Default logging configuration
DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "structured": {
            "()": StructuredFormatter,
            "include_context": True,
        },
        "simple": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "structured",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "paysec": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False,
        },
    },
}


def build_logging_config(config: PaySecConfig) -> Dict[str, Any]:
    """Derive a dictConfig mapping from a PaySecConfig."""
    logging_config = copy.deepcopy(DEFAULT_LOGGING_CONFIG)
    formatter = "structured" if config.log_format == LogFormat.STRUCTURED else "simple"
    logging_config["handlers"]["console"]["formatter"] = formatter
    logging_config["loggers"]["paysec"]["level"] = config.log_level.value
    return logging_config


def configure_logging(
    config: Optional[PaySecConfig] = None,
    logging_config: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Configure the logging system.

    Args:
        config: paysec configuration supplying level and format
        logging_config: Full dictConfig mapping, overrides config when given
    """
    if logging_config is None:
        logging_config = build_logging_config(config or PaySecConfig())

    logging.config.dictConfig(logging_config)
