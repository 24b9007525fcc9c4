"""
Timeout Exceptions

Raised by bounded operations that lose the race against their deadline

Author: System Architect
Date: 2025-12-08
"""

from src.core.exceptions.base import QuotaGuardError


class OperationTimeoutError(QuotaGuardError, TimeoutError):
    """
    Raised when a bounded operation exceeds its deadline.

    Also a builtin ``TimeoutError`` so generic timeout handlers catch it.
    The underlying I/O is not cancelled and may still complete later.
    """

    def __init__(
        self,
        operation: str,
        timeout: float,
        session_id: str | None = None,
        details: dict | None = None,
    ):
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            f"{operation} timed out after {timeout:g}s",
            session_id=session_id,
            details={"operation": operation, "timeout": timeout, **(details or {})},
        )
