"""Structured logging: JSON formatter, request-id filter and setup."""

from oauth_relay.logging.formatter import JSONLogFormatter
from oauth_relay.logging.setup import RequestIDFilter, configure_logging, request_id_var

__all__ = ["JSONLogFormatter", "RequestIDFilter", "configure_logging", "request_id_var"]
