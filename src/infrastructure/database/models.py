"""SQLAlchemy ORM models.

Groups and reservations are stored one row per document: their member sets,
display-name maps, signups and rules live in JSON columns (JSONB on
PostgreSQL) and are always rewritten as a whole.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class GroupModel(Base):
    """Group document."""

    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_actor_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    admin_actor_ids: Mapped[list[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    member_actor_ids: Mapped[list[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    member_display_names: Mapped[dict[str, str]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)
    deleted_by_actor_id: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class ReservationModel(Base):
    """Reservation document with its embedded signups."""

    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    group_id: Mapped[str] = mapped_column(String(64), nullable=False, default="default-group")
    group_name: Mapped[str | None] = mapped_column(String(100))
    visibility_scope: Mapped[str | None] = mapped_column(String(20))
    venue_id: Mapped[str | None] = mapped_column(String(128))
    venue_name: Mapped[str | None] = mapped_column(String(255))
    venue_address: Mapped[str | None] = mapped_column(Text)
    court_id: Mapped[str | None] = mapped_column(String(128))
    court_name: Mapped[str | None] = mapped_column(String(255))
    start_date_time: Mapped[str] = mapped_column(String(64), nullable=False)
    duration_minutes: Mapped[int | None] = mapped_column(Integer)
    # Legacy creator snapshot {"id", "name"}; created_by_id mirrors its id for lookups.
    created_by: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument)
    created_by_id: Mapped[str | None] = mapped_column(String(128))
    created_by_actor_id: Mapped[str | None] = mapped_column(String(128))
    guest_access_actor_ids: Mapped[list[str] | None] = mapped_column(JSONDocument, default=list)
    rules: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, default=dict)
    signups: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONDocument, default=list)
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('active', 'cancelled')",
            name="ck_reservations_status",
        ),
        nullable=False,
        default="active",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("ix_reservations_group_id", "group_id"),
        Index("ix_reservations_created_by_actor_id", "created_by_actor_id"),
        Index("ix_reservations_created_by_id", "created_by_id"),
    )


class InvitationModel(Base):
    """Group or reservation invite token."""

    __tablename__ = "invitations"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    target_type: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "target_type IN ('group', 'reservation')",
            name="ck_invitations_target_type",
        ),
        nullable=False,
    )
    group_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reservation_id: Mapped[str | None] = mapped_column(String(64))
    created_by_actor_id: Mapped[str] = mapped_column(String(128), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False, default="link")
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('active', 'revoked')",
            name="ck_invitations_status",
        ),
        nullable=False,
        default="active",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class AuditEventModel(Base):
    """Append-only group audit log entry."""

    __tablename__ = "group_audit_events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    group_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(128), nullable=False)
    actor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(128))
    target_name: Mapped[str | None] = mapped_column(String(255))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONDocument)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
