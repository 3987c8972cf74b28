# src/transaction_import/log.py
"""
Logging setup shared by the Lambda entry points.

Lambda ships stdout to CloudWatch, so the default is one JSON object per line
(python-json-logger). LOG_FORMAT=text gives plain lines for local runs.
"""
import logging
import os
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

LOGGER_NAME = "transaction_import"


class PipelineJsonFormatter(JsonFormatter):
    """Adds level and logger name to every record."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def setup_logging(level: Optional[str] = None, format_type: Optional[str] = None) -> logging.Logger:
    """Configure the package logger. Safe to call on every warm invocation."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    format_type = (format_type or os.getenv("LOG_FORMAT", "json")).lower()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if format_type == "json":
        handler.setFormatter(PipelineJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        ))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    # module loggers hang off the package logger so one setup covers them all
    if name.startswith(LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
