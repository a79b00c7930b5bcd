"""Pydantic schemas for the group audit log API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditEventResponse(BaseModel):
    """Schema for AuditEvent response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    type: str
    actor_id: str
    actor_name: str
    target_id: str | None
    target_name: str | None
    metadata: dict[str, str]
    created_at: datetime


class AuditEventListResponse(BaseModel):
    """Schema for list of AuditEvents response."""

    data: list[AuditEventResponse]
    meta: dict[str, Any] = Field(default_factory=dict)
