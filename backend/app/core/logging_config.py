"""
TeamTime - Centralized Logging Configuration
Plain text in development, one JSON object per line in production.
Every record carries the request, user and team ids of the request it was emitted in.
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from app.core.config import settings


# Request-scoped context, set by RequestLoggingMiddleware
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')
team_id_var: ContextVar[str] = ContextVar('team_id', default='')

_CONTEXT_VARS = {
    'request_id': request_id_var,
    'user_id': user_id_var,
    'team_id': team_id_var,
}

# Attributes every LogRecord carries; anything else was passed via `extra`
_RESERVED_RECORD_KEYS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'taskName',
}

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024


def log_context() -> Dict[str, str]:
    """Context ids that are set for the current request"""
    return {name: var.get() for name, var in _CONTEXT_VARS.items() if var.get()}


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def set_team_id(team_id: str) -> None:
    team_id_var.set(team_id)


def generate_request_id() -> str:
    """Short random id echoed back in X-Request-ID"""
    return str(uuid.uuid4())[:8]


def token_preview(token: Optional[str], length: int = 10) -> str:
    """Shorten a secret-bearing token for log output"""
    if not token:
        return '-'
    return token[:length] + '...'


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for production

    Context ids are added only when set. Fields passed through ``extra``
    (event_type, invitation_event, duration_ms, ...) become top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(log_context())

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, _ = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ContextualFormatter(logging.Formatter):
    """Text formatter that fills %(request_id)s, %(user_id)s and %(team_id)s, '-' when unset"""

    def format(self, record: logging.LogRecord) -> str:
        context = log_context()
        for name in _CONTEXT_VARS:
            setattr(record, name, context.get(name, '-'))
        return super().format(record)


class TeamTimeLogger(logging.Logger):
    """
    Logger with structured helpers for the events the service emits
    """

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        """Log HTTP request details"""
        self.info(
            f"HTTP {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_invitation_event(self, event: str, success: bool, email: str = None,
                             token: str = None, reason: str = None, **kwargs) -> None:
        """Log invitation issuance and verification outcomes"""
        level = logging.INFO if success else logging.WARNING
        self.log(
            level,
            f"Invitation {event}: {'success' if success else 'failed'}" +
            (f" - {email}" if email else "") +
            (f" - {reason}" if reason else ""),
            extra={
                "event_type": "invitation",
                "invitation_event": event,
                "invitation_success": success,
                "invitee_email": email,
                "token_prefix": token_preview(token),
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: str = None,
                               **kwargs) -> None:
        """Log an unhandled error with its traceback"""
        self.error(
            f"Error in {context}: {type(error).__name__}: {str(error)}",
            exc_info=True,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_context": context,
                **kwargs
            }
        )

    def log_performance(self, operation: str, duration_ms: float,
                        threshold_ms: float = 1000, **kwargs) -> None:
        """DEBUG within the threshold, WARNING above it"""
        exceeded = duration_ms > threshold_ms
        self.log(
            logging.WARNING if exceeded else logging.DEBUG,
            f"Performance: {operation} took {duration_ms:.2f}ms" +
            (f" (threshold: {threshold_ms}ms)" if exceeded else ""),
            extra={
                "event_type": "performance",
                "operation": operation,
                "duration_ms": duration_ms,
                "threshold_ms": threshold_ms,
                "exceeded_threshold": exceeded,
                **kwargs
            }
        )


def _file_handler(path: str, formatter: logging.Formatter, backup_count: int) -> RotatingFileHandler:
    log_file = Path(path)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=backup_count)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> TeamTimeLogger:
    """Configure the "teamtime" logger for the current environment"""
    logging.setLoggerClass(TeamTimeLogger)

    logger = logging.getLogger("teamtime")
    # getLogger() may have created it before the class was registered
    logger.__class__ = TeamTimeLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()

    if settings.is_production:
        console_formatter = file_formatter = JSONFormatter()
        backup_count = 10
    else:
        console_formatter = ContextualFormatter("%(levelname)-8s | %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | "
            "[%(request_id)s] [%(user_id)s] [%(team_id)s] | "
            "%(funcName)s:%(lineno)d | %(message)s"
        )
        backup_count = 5

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        logger.addHandler(_file_handler(settings.LOG_FILE, file_formatter, backup_count))

    # RequestLoggingMiddleware already logs every request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger.debug(
        "Logging initialized",
        extra={
            "environment": settings.ENVIRONMENT,
            "log_level": settings.LOG_LEVEL,
            "json_logging": settings.is_production
        }
    )

    return logger


logger: TeamTimeLogger = setup_logging()
