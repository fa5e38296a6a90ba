# common/logging_config.py
# -*- coding: utf-8 -*-
"""
Structured logging for the installer's audit trail.

The audit log is a JSON-lines file: every recorded step result becomes one
JSON object, so a run can be inspected or diffed by machine after the fact.
The human-readable run log is configured separately by
common.core_utils.setup_logging.
"""

import json
import logging
import socket
from datetime import datetime, timezone
from pathlib import Path

AUDIT_LOGGER_NAME = "pbs_installer.audit"

_RESERVED_RECORD_KEYS = frozenset(
    [
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
        "symbol",
        "message",
        "asctime",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Formats log records as JSON with consistent structure including:
    - timestamp (ISO format, UTC)
    - level
    - service name and host
    - message
    - any ``extra`` fields passed with the record
    """

    def __init__(self, service_name: str = "pbs-installer"):
        super().__init__()
        self.service_name = service_name
        self.hostname = socket.gethostname()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "hostname": self.hostname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_audit_logging(
    audit_file_path: Path, service_name: str = "pbs-installer"
) -> logging.Logger:
    """
    Set up the JSON-lines audit logger.

    The audit logger does not propagate to the root logger, so audit entries
    stay out of the console and the run log.

    Args:
        audit_file_path: File receiving one JSON object per line.
        service_name: Service name recorded in every entry.

    Returns:
        The configured audit logger.
    """
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    audit_logger.setLevel(logging.INFO)
    audit_logger.propagate = False

    for handler in audit_logger.handlers[:]:
        audit_logger.removeHandler(handler)
        handler.close()

    audit_file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(
        audit_file_path, mode="a", encoding="utf-8"
    )
    file_handler.setFormatter(JSONFormatter(service_name))
    audit_logger.addHandler(file_handler)
    return audit_logger
