"""
Structured logging configuration for the light client.

Environment Variables:
    LIGHTCLIENT_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    LIGHTCLIENT_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from lightclient.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, trace_id="sync-42")
    logger.info("Applied checkpoint", extra={"sequence_number": 42})
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args override the environment:
    - LIGHTCLIENT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    - LIGHTCLIENT_LOG_FORMAT: json, text (default: json)

    Logs go to stderr so that --json command output on stdout stays parseable.
    """
    log_level = (level or os.getenv("LIGHTCLIENT_LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.getenv("LIGHTCLIENT_LOG_FORMAT", "json")).lower()

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    resolved = level_map.get(log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)

    if fmt == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [trace_id=%(trace_id)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    handler.addFilter(TraceIDFilter())
    root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Logger whose records carry trace_id, so every line of one sync run can be
    grouped. Without a trace_id the records read "N/A".
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"trace_id": trace_id or "N/A"})


class TraceIDFilter(logging.Filter):
    """
    Ensures every record has a trace_id, even when not logged via get_logger().
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "N/A"  # type: ignore
        return True
