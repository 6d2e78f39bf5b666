"""
CallDash Centralized Logging Configuration
Structured logging with JSON output and secret redaction
"""

import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "calldash"

REDACTED = "***REDACTED***"

SENSITIVE_PATTERNS = [
    # Passwords in key=value / "key": "value" form
    (
        re.compile(r"(['\"]?password['\"]?\s*[:=]\s*['\"]?)([^'\",\s}]+)", re.IGNORECASE),
        rf"\1{REDACTED}",
    ),
    # Bearer credentials
    (re.compile(r"(bearer\s+)([A-Za-z0-9_\-\.]{10,})", re.IGNORECASE), rf"\1{REDACTED}"),
    # Session cookie / token fields
    (
        re.compile(r"(['\"]?token['\"]?\s*[:=]\s*['\"]?)([A-Za-z0-9_\-\.]{10,})", re.IGNORECASE),
        rf"\1{REDACTED}",
    ),
    # Bare JWTs
    (re.compile(r"eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+"), REDACTED),
    # Database URLs with credentials
    (re.compile(r"(postgres(?:ql)?(?:\+\w+)?://[^:/\s]+):([^@\s]+)@"), rf"\1:{REDACTED}@"),
]


def sanitize_message(message: str) -> str:
    """Mask passwords, tokens and DSN credentials in a log message"""
    for pattern, replacement in SENSITIVE_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class SensitiveDataFilter(logging.Filter):
    """Redact secrets from the rendered message before any handler sees it"""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            rendered = record.getMessage()
        except (TypeError, ValueError):
            return True
        record.msg = sanitize_message(rendered)
        record.args = None
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter for structured logging"""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """Add custom fields to log record"""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        # setup_logging passes the service name as a static field
        log_record["service"] = log_record.pop("service_name", record.name.split(".")[0])

        if hasattr(record, "request_id"):
            log_record["request_id"] = record.request_id

        if hasattr(record, "user_id"):
            log_record["user_id"] = record.user_id


def setup_logging(
    service_name: str, log_level: str = "INFO", json_logs: bool = True
) -> logging.Logger:
    """
    Setup centralized logging configuration

    Args:
        service_name: Name of the service (e.g., 'calldash-api')
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to use JSON formatting (True for production)

    Returns:
        Configured package logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.addFilter(SensitiveDataFilter())

    if json_logs:
        formatter = CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(message)s",
            rename_fields={
                "levelname": "level",
                "name": "logger",
            },
            static_fields={"service_name": service_name},
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def log_api_call(
    logger: logging.Logger,
    method: str,
    endpoint: str,
    status_code: int,
    duration_ms: float,
    request_id: Optional[str] = None,
) -> None:
    """
    Log one HTTP request/response pair

    Args:
        logger: Logger instance
        method: HTTP method
        endpoint: Request path
        status_code: Response status code
        duration_ms: Request duration in milliseconds
        request_id: Request ID for tracing
    """
    extra: Dict[str, Any] = {
        "endpoint": endpoint,
        "method": method,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }
    if request_id:
        extra["request_id"] = request_id

    logger.info(
        f"API_CALL: {method} {endpoint} {status_code} {duration_ms:.1f}ms", extra=extra
    )
