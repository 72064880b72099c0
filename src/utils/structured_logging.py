"""
Structured Logging Module
Provides JSON-formatted logging for log aggregation tools
"""

import json
import logging
from typing import Any


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs each log record as one JSON object.

    Extra context is attached with
    ``logger.info("msg", extra={"extra_fields": {"email_id": ...}})``.

    SECURITY STORY: The access token travels through config and the HTTP
    client. If it ever lands in extra_fields it is replaced by "[REDACTED]"
    rather than written to disk.
    """

    SENSITIVE_FIELDS = {
        'token', 'access_token', 'authorization', 'secret', 'password', 'api_key'
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update({
                k: self._sanitize_value(k, v)
                for k, v in record.extra_fields.items()
            })

        return json.dumps(log_data, default=str)

    def _sanitize_value(self, key: str, value: Any) -> Any:
        """Return "[REDACTED]" for keys that look like credentials"""
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in self.SENSITIVE_FIELDS):
            return "[REDACTED]"
        return value
