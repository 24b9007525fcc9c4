"""
Data Access Exceptions

All exceptions related to reads and writes against the remote document store

Author: System Architect
Date: 2025-12-08
"""

from src.core.config.constants import MESSAGE_SYSTEM_BUSY
from src.core.exceptions.base import QuotaGuardError


class DataAccessError(QuotaGuardError):
    """Base exception for document store errors."""
    pass


class QuotaExceededError(DataAccessError):
    """
    Raised when the backend signals read-quota exhaustion.

    This is absorbed by the data access layer: it is recorded in the circuit
    breaker and re-surfaced as ``SystemBusyError``. Callers never see the raw
    backend error.
    """

    code = "resource-exhausted"


class SystemBusyError(DataAccessError):
    """
    User-facing "system temporarily limited" error.

    Raised in place of ``QuotaExceededError`` once the quota error has been
    recorded in the breaker.
    """

    def __init__(
        self,
        message: str = MESSAGE_SYSTEM_BUSY,
        session_id: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, session_id=session_id, details=details)


class TransientIOError(DataAccessError):
    """
    Raised for any other read/write failure.

    Common causes:
    - Network connectivity issues
    - Backend unavailable
    - Malformed query
    """
    pass
