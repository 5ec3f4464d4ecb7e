"""Centralized logging configuration.

This module provides:
- PlainFormatter for human-readable stderr output (default)
- JSONFormatter for structured logging (LOG_FORMAT=json)

Messages follow the "[TAG] message" convention; the JSON formatter lifts
the tag into its own field.
"""

import json
import logging
import re
import sys

_TAG_PATTERN = re.compile(r'\[([A-Z_]+)\]\s*(.*)', re.DOTALL)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, service: str = "simple-oauth-mcp"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        # Extract tag from message if present: [TAG] message
        tag = None
        message = record.getMessage()
        tag_match = _TAG_PATTERN.match(message)
        if tag_match:
            tag = tag_match.group(1)
            message = tag_match.group(2)

        log_entry = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "service": self.service,
            "level": record.levelname,
            "tag": tag,
            "message": message,
            "module": record.module,
            "extra": {
                "function": record.funcName,
                "line": record.lineno,
            }
        }

        if record.exc_info:
            log_entry["extra"]["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class PlainFormatter(logging.Formatter):
    """Plain text formatter for stderr output (local debugging)."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """Configure the root logger.

    Args:
        level: Log level name for the root logger.
        json_output: Emit one JSON object per line instead of plain text.

    Returns:
        Configured root logger.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(JSONFormatter() if json_output else PlainFormatter())
    root_logger.addHandler(stderr_handler)

    # Suppress noisy HTTP client logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root_logger
