"""
Presence Models

Persisted shape of one presence record (camelCase on the wire) plus the
aggregated snapshot computed from the registry.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.core.config.constants import PresenceRole
from src.core.interfaces.realtime import SERVER_TIMESTAMP


class PresenceProfile(BaseModel):
    """Display data copied into the presence record."""

    display_name: str = Field(default="", alias="displayName")
    contact_handle: str = Field(default="", alias="contactHandle")

    model_config = ConfigDict(populate_by_name=True)


class PresenceRecord(BaseModel):
    """
    One identity's presence, keyed by identity in the registry.

    Timestamps are epoch seconds resolved by the realtime service.
    """

    identity: str
    role: PresenceRole
    display_name: str = Field(default="", alias="displayName")
    contact_handle: str = Field(default="", alias="contactHandle")
    online: bool
    last_seen_at: float = Field(alias="lastSeenAt")
    connected_at: float | None = Field(default=None, alias="connectedAt")

    model_config = ConfigDict(populate_by_name=True)


def online_payload(identity: str, role: PresenceRole, profile: PresenceProfile) -> dict[str, Any]:
    """Wire record written when a connection comes up."""
    return {
        "identity": identity,
        "role": role.value,
        "displayName": profile.display_name,
        "contactHandle": profile.contact_handle,
        "online": True,
        "lastSeenAt": SERVER_TIMESTAMP,
        "connectedAt": SERVER_TIMESTAMP,
    }


def offline_payload(identity: str, role: PresenceRole, profile: PresenceProfile) -> dict[str, Any]:
    """Wire record written (or deferred) for a lost or closed connection."""
    return {
        "identity": identity,
        "role": role.value,
        "displayName": profile.display_name,
        "contactHandle": profile.contact_handle,
        "online": False,
        "lastSeenAt": SERVER_TIMESTAMP,
        "connectedAt": None,
    }


class PresenceSnapshot(BaseModel):
    """Live counts over the online records."""

    operators_online: int = 0
    admins_online: int = 0
    total: int = 0
    records: list[PresenceRecord] = Field(default_factory=list)
