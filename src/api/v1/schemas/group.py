"""Pydantic schemas for Group API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GroupCreate(BaseModel):
    """Schema for creating a group."""

    name: str = Field(..., max_length=100)
    display_name: str | None = Field(None, max_length=100)


class DefaultGroupRequest(BaseModel):
    """Schema for provisioning the caller's default group."""

    display_name: str | None = Field(None, max_length=100)


class GroupRename(BaseModel):
    """Schema for renaming a group."""

    name: str = Field(..., max_length=100)


class SetMemberAdminRequest(BaseModel):
    """Schema for granting or revoking admin rights."""

    make_admin: bool


class GroupResponse(BaseModel):
    """Schema for Group response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    owner_actor_id: str
    admin_actor_ids: list[str]
    member_actor_ids: list[str]
    member_display_names: dict[str, str]
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime


class GroupListResponse(BaseModel):
    """Schema for list of Groups response."""

    data: list[GroupResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class GroupDetailResponse(BaseModel):
    """Schema for single Group response."""

    data: GroupResponse
