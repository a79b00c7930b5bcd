"""Pydantic schemas for Reservation API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RulesPayload(BaseModel):
    """Attendance rules."""

    model_config = ConfigDict(from_attributes=True)

    max_accepted: int = Field(9999, ge=1)
    priority_actor_ids: list[str] = Field(default_factory=list)
    allow_waitlist: bool = True
    signup_deadline: str | None = None


class ReservationCreate(BaseModel):
    """Schema for creating a reservation."""

    start_date_time: str = Field(..., max_length=64)
    duration_minutes: float | None = None
    group_id: str | None = Field(None, max_length=64)
    visibility_scope: Literal["group", "link_only"] | None = None
    court_name: str | None = Field(None, max_length=255)
    court_id: str | None = Field(None, max_length=128)
    venue_id: str | None = Field(None, max_length=128)
    venue_name: str | None = Field(None, max_length=255)
    venue_address: str | None = None
    creator_name: str | None = Field(None, max_length=100)
    rules: RulesPayload | None = None

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def drop_invalid_duration(cls, v: Any) -> Any:
        """Anything but a number falls back to the default duration."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v


class ReservationUpdate(BaseModel):
    """Schema for editing a reservation. Omitted fields stay unchanged."""

    start_date_time: str | None = Field(None, max_length=64)
    duration_minutes: float | None = None
    court_name: str | None = Field(None, max_length=255)
    court_id: str | None = Field(None, max_length=128)
    venue_id: str | None = Field(None, max_length=128)
    venue_name: str | None = Field(None, max_length=255)
    venue_address: str | None = None
    group_id: str | None = Field(None, max_length=64)
    visibility_scope: Literal["group", "link_only"] | None = None


class AttendanceRequest(BaseModel):
    """Schema for recording attendance intent."""

    status: str
    display_name: str | None = Field(None, max_length=100)


class ReassignOwnerRequest(BaseModel):
    """Schema for handing a reservation over to another member."""

    target_actor_id: str = Field(..., min_length=1, max_length=128)
    target_name: str = Field(..., max_length=100)


class CreatorResponse(BaseModel):
    """Legacy creator snapshot."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class SignupResponse(BaseModel):
    """Schema for Signup response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    reservation_id: str
    actor_id: str | None
    user_id: str
    user_name: str
    attendance_status: str
    created_at: datetime
    updated_at: datetime


class ReservationResponse(BaseModel):
    """Schema for Reservation response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    group_name: str | None
    visibility_scope: str
    venue_id: str | None
    venue_name: str | None
    venue_address: str | None
    court_id: str | None
    court_name: str
    start_date_time: str
    duration_minutes: int
    created_by: CreatorResponse
    created_by_actor_id: str | None
    guest_access_actor_ids: list[str]
    rules: RulesPayload
    signups: list[SignupResponse]
    status: str
    created_at: datetime
    updated_at: datetime


class SignupResultResponse(BaseModel):
    """Accepted players and waitlist."""

    accepted: list[SignupResponse]
    waitlist: list[SignupResponse]


class ReservationListResponse(BaseModel):
    """Schema for list of Reservations response."""

    data: list[ReservationResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class ReservationDetailResponse(BaseModel):
    """Schema for single Reservation response."""

    data: ReservationResponse


class SignupDetailResponse(BaseModel):
    """Schema for single Signup response."""

    data: SignupResponse
