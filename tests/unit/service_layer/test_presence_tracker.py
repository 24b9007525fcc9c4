"""
Unit Tests for PresenceTracker

Tests the registration order, ungraceful disconnects handled by the
realtime service, reconnects, graceful teardown and error swallowing.
"""

from unittest.mock import AsyncMock

import pytest

from src.core.config.constants import PresenceRole, PresenceState
from src.core.exceptions import RealtimeConnectionError
from src.infrastructure.realtime.memory import InMemoryRealtimeClient
from src.presence import PresenceProfile, PresenceTracker


class RecordingClient(InMemoryRealtimeClient):
    """In-memory connection that records the order of presence writes."""

    def __init__(self, server):
        super().__init__(server)
        self.calls: list[tuple[str, str]] = []

    async def arm_disconnect_write(self, path, value):
        self.calls.append(("arm", path))
        await super().arm_disconnect_write(path, value)

    async def set(self, path, value):
        self.calls.append(("set", path))
        await super().set(path, value)


@pytest.fixture
def session(realtime_server):
    return RecordingClient(realtime_server)


@pytest.fixture
def observer(realtime_server):
    return realtime_server.client()


@pytest.mark.unit
class TestRegistration:
    @pytest.mark.asyncio
    async def test_arms_disconnect_write_before_online(self, session):
        tracker = PresenceTracker(session)

        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        assert session.calls == [("arm", "presence/ana@example.com"), ("set", "presence/ana@example.com")]
        assert tracker.state is PresenceState.ONLINE

    @pytest.mark.asyncio
    async def test_online_record_shape(self, session, observer, fake_clock):
        tracker = PresenceTracker(session)
        profile = PresenceProfile(display_name="Ana", contact_handle="ana@example.com")

        await tracker.start("ana@example.com", "operator", profile)

        assert await observer.get("presence/ana@example.com") == {
            "identity": "ana@example.com",
            "role": "operator",
            "displayName": "Ana",
            "contactHandle": "ana@example.com",
            "online": True,
            "lastSeenAt": fake_clock(),
            "connectedAt": fake_clock(),
        }

    @pytest.mark.asyncio
    async def test_start_same_identity_is_noop(self, session):
        tracker = PresenceTracker(session)
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        assert len(session.calls) == 2

    @pytest.mark.asyncio
    async def test_start_new_identity_retracts_previous(self, session, observer):
        tracker = PresenceTracker(session)
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)
        await tracker.start("ben@example.com", PresenceRole.ADMIN)

        assert (await observer.get("presence/ana@example.com"))["online"] is False
        assert (await observer.get("presence/ben@example.com"))["online"] is True
        assert tracker.identity == "ben@example.com"

    @pytest.mark.asyncio
    async def test_custom_registry_path(self, session, observer):
        tracker = PresenceTracker(session, registry_path="/staff/presence/")
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        assert tracker.record_path == "staff/presence/ana@example.com"
        assert (await observer.get("staff/presence"))["ana@example.com"]["online"] is True


@pytest.mark.unit
class TestDisconnects:
    @pytest.mark.asyncio
    async def test_ungraceful_drop_marks_offline_without_teardown(self, session, observer, fake_clock):
        tracker = PresenceTracker(session)
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        fake_clock.advance(120.0)
        await session.drop()

        record = await observer.get("presence/ana@example.com")
        assert record["online"] is False
        assert record["connectedAt"] is None
        assert record["lastSeenAt"] == fake_clock()
        assert tracker.state is PresenceState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_reconnect_rearms_and_reregisters(self, session, observer):
        tracker = PresenceTracker(session)
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)
        await session.drop()
        session.calls.clear()

        await session.reconnect()

        assert session.calls == [("arm", "presence/ana@example.com"), ("set", "presence/ana@example.com")]
        assert (await observer.get("presence/ana@example.com"))["online"] is True
        assert "presence/ana@example.com" in session.deferred_writes
        assert tracker.state is PresenceState.ONLINE


@pytest.mark.unit
class TestStop:
    @pytest.mark.asyncio
    async def test_stop_writes_offline_and_cancels_deferred(self, session, observer):
        tracker = PresenceTracker(session)
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        await tracker.stop()

        assert (await observer.get("presence/ana@example.com"))["online"] is False
        assert session.deferred_writes == {}
        assert tracker.state is PresenceState.CLOSED

    @pytest.mark.asyncio
    async def test_no_registration_after_stop(self, session):
        tracker = PresenceTracker(session)
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)
        await tracker.stop()
        await session.drop()
        session.calls.clear()

        await session.reconnect()

        assert session.calls == []

    @pytest.mark.asyncio
    async def test_stop_before_start(self, session):
        tracker = PresenceTracker(session)
        await tracker.stop()

        assert tracker.state is PresenceState.CLOSED
        assert session.calls == []


@pytest.mark.unit
class TestFailuresAreSwallowed:
    @staticmethod
    def _realtime():
        realtime = AsyncMock()

        async def watch(callback):
            await callback(True)
            return AsyncMock()

        realtime.watch_connection.side_effect = watch
        return realtime

    @pytest.mark.asyncio
    async def test_arm_failure_skips_online_write(self):
        realtime = self._realtime()
        realtime.arm_disconnect_write.side_effect = RealtimeConnectionError("down")
        tracker = PresenceTracker(realtime)

        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        realtime.set.assert_not_awaited()
        assert tracker.state is PresenceState.REGISTERING

    @pytest.mark.asyncio
    async def test_online_write_failure_swallowed(self):
        realtime = self._realtime()
        realtime.set.side_effect = RealtimeConnectionError("down")
        tracker = PresenceTracker(realtime)

        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        realtime.arm_disconnect_write.assert_awaited_once()
        assert tracker.state is PresenceState.REGISTERING

    @pytest.mark.asyncio
    async def test_watch_failure_swallowed(self):
        realtime = AsyncMock()
        realtime.watch_connection.side_effect = RealtimeConnectionError("down")
        tracker = PresenceTracker(realtime)

        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        assert tracker.state is PresenceState.UNINITIALIZED
        assert tracker.identity is None

    @pytest.mark.asyncio
    async def test_start_retries_after_watch_failure(self, realtime_server, observer):
        session = RecordingClient(realtime_server)
        tracker = PresenceTracker(session)
        session.watch_connection = AsyncMock(side_effect=RealtimeConnectionError("down"))
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        del session.watch_connection
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)

        assert tracker.state is PresenceState.ONLINE
        assert (await observer.get("presence/ana@example.com"))["online"] is True

    @pytest.mark.asyncio
    async def test_offline_write_failure_on_stop_swallowed(self):
        realtime = self._realtime()
        tracker = PresenceTracker(realtime)
        await tracker.start("ana@example.com", PresenceRole.OPERATOR)
        realtime.set.side_effect = RealtimeConnectionError("down")

        await tracker.stop()

        assert tracker.state is PresenceState.CLOSED
