import logging
import os
import sys
from typing import Protocol

from loki_logger_handler.loki_logger_handler import LokiLoggerHandler

from s3_request.request_id import request_id_context


# Per-connection chatter from the HTTP stack; only shown when the client itself logs at DEBUG
TRANSPORT_LOGGERS = ("httpx", "httpcore")


class LoggingConfig(Protocol):
    log_level: str
    loki_enabled: bool
    loki_url: str
    environment: str


class RequestIDFilter(logging.Filter):
    """Stamp each record with the id of the S3 call it was emitted under.

    Records logged outside an executor call get ``no-request-id``. An explicit
    ``extra={"request_id": ...}`` is left alone.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_context.get()
        return True


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _loki_handler(config: LoggingConfig, service_name: str) -> logging.Handler:
    return LokiLoggerHandler(
        url=config.loki_url,
        labels={
            "service": service_name,
            "environment": config.environment,
            "host": os.getenv("HOSTNAME", "unknown"),
        },
        timeout=10,
        compressed=True,
    )


def setup_loki_logging(config: LoggingConfig, service_name: str, include_request_id: bool = True) -> logging.Logger:
    """
    Configure root logging for a process embedding the client.

    Logs go to stdout, and additionally to Loki when enabled. Calling this
    again replaces the previous handlers.

    Args:
        config: Client configuration
        service_name: Name of the service embedding the client (e.g., "registry")
        include_request_id: Whether to include request_id in log format (default: True)

    Returns:
        Logger named after the service
    """
    log_level = _resolve_level(config.log_level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.loki_enabled and config.loki_url:
        handlers.append(_loki_handler(config, service_name))

    if include_request_id:
        request_id_filter = RequestIDFilter()
        for handler in handlers:
            handler.addFilter(request_id_filter)
        log_format = "%(asctime)s - [%(request_id)s] - %(name)s - %(levelname)s - %(message)s"
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(level=log_level, format=log_format, handlers=handlers, force=True)

    transport_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)

    return logging.getLogger(service_name)
