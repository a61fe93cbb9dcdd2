"""
Structured JSON Logging Configuration

Provides centralized logging configuration with:
- JSON formatted output for machine parsing by downstream log processors
- Push correlation ID tracking via contextvars
- Optional file rotation
- Configurable log levels via environment
"""
import logging
import logging.handlers
import os
import contextvars
import re
from datetime import datetime, timezone
from typing import Optional
from pythonjsonlogger import jsonlogger

from pushbridge.core.config import settings

# Context variable for push correlation ID propagation
push_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'push_id', default=None
)


class PushIdFilter(logging.Filter):
    """
    Logging filter that adds push_id to all log records.

    Every log line emitted while one push() call is in flight carries the
    same push_id, so batch and endpoint warnings can be grouped.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.push_id = push_id_var.get() or "-"
        return True


class SanitizingFilter(logging.Filter):
    """
    Filter that sanitizes log messages to prevent log injection attacks.

    Gateway response bodies and endpoint strings are attacker-influenced and
    end up in log messages, so newlines are flattened.
    """

    DANGEROUS_PATTERNS = [
        (r'\r\n', ' '),  # CRLF injection
        (r'\n', ' '),    # Newline injection
        (r'\r', ' '),    # Carriage return injection
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            for pattern, replacement in self.DANGEROUS_PATTERNS:
                record.msg = re.sub(pattern, replacement, record.msg)

        if record.args:
            sanitized_args = []
            for arg in record.args:
                if isinstance(arg, str):
                    sanitized_args.append(sanitize_log_value(arg))
                else:
                    sanitized_args.append(arg)
            record.args = tuple(sanitized_args)

        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    Custom JSON formatter that adds standard fields to all log entries.

    Output format:
    {
        "timestamp": "2025-11-23T10:30:00.000Z",
        "level": "WARNING",
        "message": "Dispatching FCM notification failed for endpoint abc: Unregistered device",
        "module": "response",
        "logger": "pushbridge.push.response",
        "push_id": "uuid-here",
        "endpoint": "abc",
        "error": "Unregistered device"
    }
    """

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.now(timezone.utc).isoformat()

        log_record['level'] = record.levelname
        log_record['module'] = record.module
        log_record['logger'] = record.name
        log_record['push_id'] = getattr(record, 'push_id', '-')

        if 'message' not in log_record:
            log_record['message'] = record.getMessage()


def setup_logging(
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
    json_output: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure logging for the pushbridge loggers.

    Args:
        log_level: Override log level (default from settings.LOG_LEVEL)
        log_dir: Directory for a rotating pushbridge.log (default settings.LOG_DIR)
        json_output: Emit JSON instead of plain text (default settings.LOG_JSON)

    Returns:
        The configured "pushbridge" logger
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    directory = log_dir if log_dir is not None else settings.LOG_DIR
    use_json = settings.LOG_JSON if json_output is None else json_output

    if use_json:
        formatter: logging.Formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s'
        )
    else:
        # push_id is set on every record by the PushIdFilter of each handler
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(push_id)s] %(message)s'
        )

    logger = logging.getLogger('pushbridge')
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(PushIdFilter())
    console_handler.addFilter(SanitizingFilter())
    logger.addHandler(console_handler)

    if directory:
        os.makedirs(directory, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(directory, 'pushbridge.log'),
            maxBytes=100 * 1024 * 1024,  # 100MB
            backupCount=7,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(PushIdFilter())
        file_handler.addFilter(SanitizingFilter())
        logger.addHandler(file_handler)

    # Suppress noisy third-party loggers
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('hpack').setLevel(logging.WARNING)

    return logger


def set_push_id(push_id: Optional[str]) -> contextvars.Token:
    """
    Set the push correlation ID for the current context.

    Returns:
        Token that can be used to reset the context
    """
    return push_id_var.set(push_id)


def get_push_id() -> Optional[str]:
    """Get the current push correlation ID from context."""
    return push_id_var.get()


def clear_push_id(token: contextvars.Token) -> None:
    """Clear the push correlation ID using the token from set_push_id."""
    push_id_var.reset(token)


def sanitize_log_value(value: str) -> str:
    """
    Sanitize a value for safe logging, preventing log injection.

    Args:
        value: String value to sanitize

    Returns:
        Sanitized string safe for logging
    """
    if not isinstance(value, str):
        return str(value)

    sanitized = value.replace('\r\n', ' ').replace('\n', ' ').replace('\r', ' ')

    # Limit length to prevent log flooding from large gateway bodies
    max_length = 10000
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + '...[truncated]'

    return sanitized
