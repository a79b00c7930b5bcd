"""Pydantic schemas for Invitation API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InvitationCreate(BaseModel):
    """Schema for issuing an invite."""

    channel: str | None = Field(None, max_length=20)


class AcceptInvitationRequest(BaseModel):
    """Schema for redeeming an invite."""

    display_name: str | None = Field(None, max_length=100)


class InvitationResponse(BaseModel):
    """Schema for Invitation response."""

    model_config = ConfigDict(from_attributes=True)

    token: str
    target_type: str
    group_id: str
    reservation_id: str | None
    created_by_actor_id: str
    channel: str
    status: str
    created_at: datetime
    expires_at: datetime
    invite_link: str


class InvitationDetailResponse(BaseModel):
    """Schema for single Invitation response."""

    data: InvitationResponse


class InvitationListResponse(BaseModel):
    """Schema for list of Invitations response."""

    data: list[InvitationResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class AcceptInvitationResponse(BaseModel):
    """What an accepted invite granted."""

    target_type: str
    group_id: str | None = None
    reservation_id: str | None = None
