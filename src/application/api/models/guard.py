"""
Presence and Admission API Models
=================================

Request/response models for the presence monitor and the admission check.
"""

from pydantic import BaseModel, Field

from src.core.config.constants import PresenceRole


class OnlineRecordResponse(BaseModel):
    identity: str
    role: PresenceRole
    display_name: str
    contact_handle: str
    last_seen_at: float
    connected_at: float | None = None


class OnlineUsersResponse(BaseModel):
    """Live presence snapshot."""

    operators_online: int = Field(..., ge=0, description="Online non-admin identities")
    admins_online: int = Field(..., ge=0, description="Online admin identities")
    total: int = Field(..., ge=0, description="All online identities")
    records: list[OnlineRecordResponse] = Field(default_factory=list)


class ServerStatsResponse(BaseModel):
    current_users: int = Field(..., ge=0)
    max_users: int = Field(..., gt=0)
    available_slots: int = Field(..., ge=0)
    utilization_percent: int = Field(..., ge=0)
    is_full: bool


class AdmissionCheckRequest(BaseModel):
    """Already-authenticated identity asking to start a session."""

    identity: str = Field(..., min_length=1, description="Authenticated identity (e.g. e-mail)")
    role: PresenceRole | None = Field(None, description="Role of the identity")
    bypass_list: list[str] = Field(default_factory=list, description="Extra bypass identities")


class AdmissionCheckResponse(BaseModel):
    allowed: bool
    current_count: int = Field(..., ge=0)
    max_count: int = Field(..., gt=0)
    reason: str | None = None
    message: str | None = None
