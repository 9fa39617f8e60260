"""
Academy API - Centralized Logging Configuration
Plain-text logs in development, JSON structured logs in production
"""

import logging
import sys
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from academy.core.config import settings


# Context variables for request tracing
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

_RESERVED_RECORD_KEYS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'taskName', 'request_id', 'user_id',
}


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get() or ''


def set_user_id(user_id: str) -> None:
    """Tag subsequent log lines of this request with the caller's account id"""
    user_id_var.set(user_id)


def generate_request_id() -> str:
    """Generate a short unique request ID"""
    return str(uuid.uuid4())[:8]


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with request context and any `extra` fields"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "request_id": get_request_id() or None,
            "user_id": get_user_id() or None,
        }

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        payload.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS and not key.startswith('_')
        )
        return json.dumps({k: v for k, v in payload.items() if v is not None}, default=str)


class ContextualFormatter(logging.Formatter):
    """
    Readable formatter for development that includes request_id and user_id
    """

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        return super().format(record)


class AcademyLogger(logging.Logger):
    """
    Custom logger with convenience methods for structured logging
    """

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        """Log a completed HTTP request; 4xx as warning, 5xx as error"""
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.log(
            level,
            f"← {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request_complete",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """Log authentication events"""
        level = logging.INFO if success else logging.WARNING
        self.log(
            level,
            f"[Auth] {event}: {'success' if success else 'failed'}" +
            (f" - {user_email}" if user_email else "") +
            (f" - {reason}" if reason else ""),
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_payment_event(self, rail: str, event: str, student_id: Optional[str] = None,
                          amount: Any = None, reference: Optional[str] = None, **kwargs) -> None:
        """Log a reconciliation step (order issued, proof verified, enrollment granted)"""
        self.info(
            f"[{rail}] {event}" +
            (f" - student={student_id}" if student_id else "") +
            (f" amount={amount}" if amount is not None else "") +
            (f" ref={reference}" if reference else ""),
            extra={
                "event_type": "payment",
                "payment_rail": rail,
                "payment_event": event,
                "student_id": student_id,
                "amount": amount,
                "payment_reference": reference,
                **kwargs
            }
        )

    def log_upstream_failure(self, provider: str, operation: str, error: Any, **kwargs) -> None:
        """Upstream detail is logged here and never returned to clients"""
        self.error(
            f"[{provider}] {operation} failed: {error}",
            extra={
                "event_type": "upstream_error",
                "provider": provider,
                "operation": operation,
                "error_message": str(error),
                **kwargs
            }
        )


DEV_CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"
DEV_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] | "
    "%(funcName)s:%(lineno)d | %(message)s"
)
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024

QUIET_LIBRARIES = ("httpx", "httpcore", "botocore", "urllib3", "uvicorn.access", "sqlalchemy.engine")


def _file_handler(formatter: logging.Formatter, backup_count: int) -> RotatingFileHandler:
    log_file = Path(settings.LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=backup_count)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> AcademyLogger:
    """
    Configure the "academy" logger.

    Production writes JSON lines to stdout and LOG_FILE; development writes
    short lines to stdout and the contextual format to LOG_FILE.
    """
    logging.setLoggerClass(AcademyLogger)
    logger = logging.getLogger("academy")
    logger.__class__ = AcademyLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()

    json_logging = settings.ENVIRONMENT == "production"
    if json_logging:
        console_formatter = file_formatter = JSONFormatter()
        backup_count = 10
    else:
        console_formatter = ContextualFormatter(DEV_CONSOLE_FORMAT)
        file_formatter = ContextualFormatter(DEV_FILE_FORMAT)
        backup_count = 5

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(console_formatter)
    logger.addHandler(console)

    if settings.LOG_FILE:
        logger.addHandler(_file_handler(file_formatter, backup_count))

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"Logging ready (environment={settings.ENVIRONMENT}, json={json_logging})")
    return logger


logger: AcademyLogger = setup_logging()
