"""Structured logging configuration with correlation IDs and secret redaction."""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

import orjson
import structlog
from structlog.processors import CallsiteParameter

from llm_dispatcher.config import get_settings

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class SecretRedactor:
    """Redact credentials and tokens from log values."""

    API_KEY_PATTERN = re.compile(r"\b(sk-|pk-|gsk_|AIza|api[_-]?key[\s=:]+)[\w-]{16,}\b", re.IGNORECASE)
    BEARER_PATTERN = re.compile(r"\bBearer\s+[\w.-]{16,}\b")
    JWT_PATTERN = re.compile(r"\beyJ[A-Za-z0-9-_]+\.[A-Za-z0-9-_]+\.[A-Za-z0-9-_]+\b")

    @classmethod
    def redact(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value

        value = cls.API_KEY_PATTERN.sub("[API_KEY_REDACTED]", value)
        value = cls.BEARER_PATTERN.sub("Bearer [REDACTED]", value)
        value = cls.JWT_PATTERN.sub("[JWT_REDACTED]", value)
        return value


def add_context_vars(logger, method_name, event_dict):
    """Add context variables to log events."""
    if request_id := request_id_var.get():
        event_dict["request_id"] = request_id
    return event_dict


def redact_sensitive_data(logger, method_name, event_dict):
    """Redact secrets from every string value of the event."""
    for key, value in event_dict.items():
        if key in ("timestamp", "level", "logger", "request_id"):
            continue
        if isinstance(value, str):
            event_dict[key] = SecretRedactor.redact(value)
        elif isinstance(value, dict):
            event_dict[key] = {k: SecretRedactor.redact(v) for k, v in value.items()}
    return event_dict


def setup_logging(
    level: str | None = None,
    format: str | None = None,
    redact_secrets: bool = True,
) -> None:
    """Configure structured logging over the standard library."""
    settings = get_settings()
    log_level = level or settings.log_level
    log_format = format or settings.log_format

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_vars,
    ]

    if redact_secrets and settings.is_production:
        processors.append(redact_sensitive_data)

    processors.extend(
        [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.FILENAME,
                    CallsiteParameter.FUNC_NAME,
                    CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
        ]
    )

    if log_format == "json":
        processors.append(
            structlog.processors.JSONRenderer(serializer=lambda obj, **kw: orjson.dumps(obj, **kw).decode())
        )
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class RequestContext:
    """Context manager for request-scoped logging."""

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id or str(uuid4())
        self._token = None

    def __enter__(self):
        self._token = request_id_var.set(self.request_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        request_id_var.reset(self._token)
        return False


def audit_log(
    action: str,
    resource: str,
    result: str,
    metadata: dict[str, Any] | None = None,
) -> None:
    """Create an audit log entry."""
    logger = get_logger("audit")
    logger.info(
        "audit_event",
        action=action,
        resource=resource,
        result=result,
        metadata=metadata or {},
        audit=True,
    )
