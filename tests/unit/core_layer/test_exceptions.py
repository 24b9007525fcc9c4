"""
Unit Tests for Core Exceptions

Tests for exception handling.
"""

import pytest

from src.core.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    DataAccessError,
    OperationTimeoutError,
    PresenceWriteError,
    QuotaExceededError,
    QuotaGuardError,
    RealtimeConnectionError,
    RealtimeError,
    SystemBusyError,
)


@pytest.mark.unit
class TestQuotaGuardError:
    """Test the base exception class."""

    def test_base_error_creation(self):
        error = QuotaGuardError("Test message")
        assert str(error) == "Test message"
        assert error.details == {}
        assert error.session_id is None

    def test_details_are_copied(self):
        details = {"key": "value"}
        error = QuotaGuardError("Test", details=details)
        error.details["extra"] = 1

        assert details == {"key": "value"}

    def test_to_dict(self):
        error = QuotaGuardError("Boom", session_id="s-1", details={"page": 2})

        assert error.to_dict() == {
            "error_type": "QuotaGuardError",
            "message": "Boom",
            "session_id": "s-1",
            "details": {"page": 2},
        }

    def test_repr_includes_context(self):
        error = QuotaGuardError("Boom", session_id="s-1", details={"page": 2})
        assert repr(error) == "QuotaGuardError(message='Boom', session_id='s-1', details={'page': 2})"

    def test_from_exception(self):
        error = RealtimeConnectionError.from_exception(ConnectionError("refused"), host="localhost")

        assert isinstance(error, RealtimeConnectionError)
        assert error.message == "refused"
        assert error.details["original_error"] == "ConnectionError"
        assert error.details["host"] == "localhost"


@pytest.mark.unit
class TestCircuitOpenError:
    def test_message_rounds_cooldown_up(self):
        error = CircuitOpenError(remaining_cooldown=12.2)

        assert "13 seconds" in error.message
        assert error.remaining_cooldown == 12.2
        assert error.details["remaining_cooldown"] == 12.2

    def test_negative_cooldown_floors_at_zero(self):
        assert CircuitOpenError(remaining_cooldown=-3).remaining_cooldown == 0.0

    def test_hierarchy(self):
        error = CircuitOpenError(1.0)
        assert isinstance(error, CircuitBreakerError)
        assert isinstance(error, QuotaGuardError)


@pytest.mark.unit
class TestDataAccessErrors:
    def test_system_busy_has_user_message(self):
        error = SystemBusyError()
        assert "Read limit reached" in error.message
        assert isinstance(error, DataAccessError)

    def test_quota_exceeded_code(self):
        assert QuotaExceededError("x").code == "resource-exhausted"


@pytest.mark.unit
class TestOperationTimeoutError:
    def test_is_builtin_timeout(self):
        error = OperationTimeoutError("presence count", 5.0)

        assert isinstance(error, TimeoutError)
        assert isinstance(error, QuotaGuardError)
        assert error.message == "presence count timed out after 5s"
        assert error.details == {"operation": "presence count", "timeout": 5.0}


@pytest.mark.unit
class TestPresenceErrors:
    def test_hierarchy(self):
        assert issubclass(RealtimeConnectionError, RealtimeError)
        assert issubclass(PresenceWriteError, QuotaGuardError)
