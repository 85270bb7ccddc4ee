"""JSON log formatter for the relay."""

import json
import logging
from datetime import UTC, datetime

from oauth_relay.constants import SERVICE_NAME

# Relay context a call site may attach with ``extra=``; tokens, codes and cookies are never among them.
CONTEXT_FIELDS = ("provider", "origin", "error_type", "status_code")


class JSONLogFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects.

    Output format::

        {"timestamp": "...", "level": "WARNING", "service": "oauth-relay",
         "logger": "oauth_relay.handlers", "message": "...", "request_id": "...",
         "provider": "github", "error_type": "InvalidStateError", "status_code": 400}

    Keys from :data:`CONTEXT_FIELDS` appear only when the record carries them.
    """

    def __init__(self, service: str = SERVICE_NAME) -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "service": self._service,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id:
            entry["request_id"] = request_id

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
