#!/usr/bin/env python3
"""
Structured Logging Module using structlog

Every guard component logs through ``get_logger(__name__)`` with a
``stage`` field (CB.*, CACHE.*, DATA.*, PRES.*, ADM.*, RT.*).

Identities are e-mail addresses, so redaction runs over every field of
the event, not only the message. The session id of the HTTP request that
triggered an event is injected from a context variable.

Author: System Architect
Date: 2025-12-05
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

from src.core.config.settings import get_settings

# Context variable for session ID (task-local storage)
session_id_ctx: ContextVar[str | None] = ContextVar("session_id", default=None)


def add_session_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add session ID to log event from context variable.

    STAGE-L.1: Session ID injection
    """
    session_id = session_id_ctx.get()
    if session_id:
        event_dict["session_id"] = session_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add ISO timestamp to log event.

    STAGE-L.2: Timestamp injection
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


_PII_PATTERNS = (
    (re.compile(r"\b[\w.+-]+@[\w.-]+\.\w+\b"), "[EMAIL]"),
    (re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"), "[PHONE]"),
)

# Fields written by the pipeline itself, never user data
_REDACTION_EXEMPT = frozenset({"timestamp", "level", "stage", "session_id", "logger"})


def _redact(value):
    if isinstance(value, str):
        for pattern, placeholder in _PII_PATTERNS:
            value = pattern.sub(placeholder, value)
        return value
    if isinstance(value, dict):
        return {k: _redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact(v) for v in value]
    return value


def redact_pii(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Redact PII from the message and from every structured field.

    STAGE-L.3: PII redaction

    Identities are e-mail addresses and presence profiles carry contact
    handles, so string values are scanned at any nesting depth:
    - Email addresses → [EMAIL]
    - Phone numbers → [PHONE]
    """
    for key, value in event_dict.items():
        if key not in _REDACTION_EXEMPT:
            event_dict[key] = _redact(value)
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add log level name to event dict.

    STAGE-L.4: Log level injection
    """
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def build_processors(log_format: str) -> list:
    """Processor chain ending in the JSON or console renderer."""
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    return [
        structlog.contextvars.merge_contextvars,
        add_session_id,
        add_timestamp,
        structlog.stdlib.add_log_level,
        add_log_level_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        # After format_exc_info: tracebacks are scrubbed too
        redact_pii,
        renderer,
    ]


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    settings = get_settings()

    # Use settings if not provided
    log_level = log_level or settings.logging.LOG_LEVEL
    log_format = log_format or settings.logging.LOG_FORMAT

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    structlog.configure(
        processors=build_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        BoundLogger: Structured logger instance

    Usage:
        logger = get_logger(__name__)
        logger.info("message", key="value", stage="CB.2")
    """
    return structlog.get_logger(name)


def set_session_id(session_id: str) -> None:
    """
    Set session ID in context for the current task.

    This should be called when a session is admitted so every log entry
    emitted on its behalf can be correlated.
    """
    session_id_ctx.set(session_id)


def get_session_id() -> str | None:
    """Get current session ID from context."""
    return session_id_ctx.get()


def clear_session_id() -> None:
    """Clear session ID from context."""
    session_id_ctx.set(None)

