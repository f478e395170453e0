"""Logging configuration for markshot."""

from __future__ import annotations

import json
import logging
import sys

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def __init__(self, service_name: str = "markshot") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_record[key] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "text",
    service_name: str = "markshot",
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 'json' for production, 'text' for development
        service_name: Value of the ``service`` key in JSON records
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if log_format == "json":
        handler.setFormatter(JSONFormatter(service_name))
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logging.basicConfig(level=level, handlers=[handler], force=True)

    # Set third-party loggers to WARNING to reduce noise
    for noisy in ("httpx", "httpcore", "urllib3", "google", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
