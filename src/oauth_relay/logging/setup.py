"""Structured logging configuration for the relay."""

import logging
import sys
from contextvars import ContextVar

from oauth_relay.constants import SERVICE_NAME
from oauth_relay.logging.formatter import JSONLogFormatter

# Set by RequestIDMiddleware for the duration of a request
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestIDFilter(logging.Filter):
    """Copy the current request id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def configure_logging(service: str = SERVICE_NAME, level: str = "INFO") -> None:
    """Set up structured JSON logging on the root logger."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONLogFormatter(service=service))
    handler.addFilter(RequestIDFilter())
    root.addHandler(handler)
