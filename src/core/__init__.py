"""
Core Module

Foundational components: configuration, logging, exceptions, interfaces
and resilience primitives.
"""

from .exceptions import (
    CircuitOpenError,
    DataAccessError,
    OperationTimeoutError,
    PresenceError,
    QuotaExceededError,
    QuotaGuardError,
    RealtimeError,
    SystemBusyError,
    TransientIOError,
)
from .logging import (
    clear_session_id,
    get_logger,
    get_session_id,
    set_session_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_session_id",
    "get_session_id",
    "clear_session_id",
    "QuotaGuardError",
    "CircuitOpenError",
    "DataAccessError",
    "QuotaExceededError",
    "SystemBusyError",
    "TransientIOError",
    "OperationTimeoutError",
    "PresenceError",
    "RealtimeError",
]
