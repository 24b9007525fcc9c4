"""
Base Exception Class

This module contains ONLY the base exception class that all other exceptions inherit from.
All specialized exceptions are in their respective themed modules.

Author: System Architect
Date: 2025-12-08
"""

from typing import Any


class QuotaGuardError(Exception):
    """
    Base exception for all quota guard errors.

    All custom exceptions inherit from this class to enable:
    - Consistent error handling
    - Session ID correlation
    - Structured error logging
    - Rich context for debugging

    Attributes:
        message: Error message
        session_id: Session ID for correlation (if available)
        details: Additional error details (dict)

    Example:
        raise TransientIOError(
            "Failed to read collection",
            session_id="abc-123",
            details={"collection": "calls", "page": 2}
        )
    """

    def __init__(
        self, message: str, session_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.session_id = session_id
        self.details = (details or {}).copy()  # Create a copy to prevent external modification
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging/API responses.

        Returns:
            Dict with error_type, message, session_id, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "session_id": self.session_id,
            "details": self.details,
        }

    def __repr__(self) -> str:
        """
        Return detailed string representation for debugging.

        Example:
            >>> error = TransientIOError("Read failed", session_id="abc-123", details={"page": 2})
            >>> repr(error)
            "TransientIOError(message='Read failed', session_id='abc-123', details={'page': 2})"
        """
        details_str = f", details={self.details}" if self.details else ""
        session_id_str = f", session_id='{self.session_id}'" if self.session_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{session_id_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        session_id: str | None = None,
        **details
    ) -> "QuotaGuardError":
        """
        Create an error from another exception.

        Useful for wrapping third-party exceptions with additional context.

        Args:
            exc: Original exception to wrap
            message: Custom message (defaults to original exception message)
            session_id: Session ID for correlation
            **details: Additional context to include

        Returns:
            New instance with wrapped exception details

        Example:
            >>> try:
            ...     await redis.ping()
            ... except redis.ConnectionError as e:
            ...     raise RealtimeConnectionError.from_exception(e, host="localhost")
        """
        error_message = message or str(exc)
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, session_id=session_id, details=error_details)

