"""
Structured logging with correlation IDs and JSON formatting.

Usage:
    from observability import get_logger

    logger = get_logger(__name__)
    logger.info("Enrichment finished", extra={"query": "laptop", "ingested": 12})
"""

import logging
import os
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from pythonjsonlogger import jsonlogger

SERVICE_NAME = os.getenv("SERVICE_NAME", "offer-search-backend")

_correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    return _correlation_id_ctx.get()


def generate_correlation_id() -> str:
    return f"req-{uuid.uuid4().hex[:16]}"


@contextmanager
def correlation_id_context(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a request or background job."""
    value = correlation_id or generate_correlation_id()
    token = _correlation_id_ctx.set(value)
    try:
        yield value
    finally:
        _correlation_id_ctx.reset(token)


class CorrelationIDFilter(logging.Filter):
    """Adds correlation_id to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "none"
        return True


class SensitiveDataFilter(logging.Filter):
    """Redacts provider credentials from log records."""

    SENSITIVE_KEYS = {
        "password", "token", "access_token", "api_key", "secret",
        "client_secret", "authorization", "x-rapidapi-key",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.args = self._redact(record.args)

        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE_KEYS:
                setattr(record, key, "[REDACTED]")

        return True

    def _redact(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                k: "[REDACTED]" if str(k).lower() in self.SENSITIVE_KEYS else self._redact(v)
                for k, v in data.items()
            }
        if isinstance(data, tuple):
            return tuple(self._redact(item) for item in data)
        if isinstance(data, list):
            return [self._redact(item) for item in data]
        return data


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["correlation_id"] = getattr(record, "correlation_id", "none")
        log_record["environment"] = os.getenv("ENVIRONMENT", "development")
        log_record["service"] = SERVICE_NAME

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging() -> None:
    """
    Configure the root logger.

    Environment variables:
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - LOG_FORMAT: json or text (default: json in production, text otherwise)
    - ENVIRONMENT: development, staging, production
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("LOG_FORMAT", "json" if os.getenv("ENVIRONMENT") == "production" else "text")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(correlation_id)s %(message)s",
            rename_fields={"timestamp": "@timestamp"},
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIDFilter())
    handler.addFilter(SensitiveDataFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Third-party noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
