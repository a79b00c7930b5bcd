"""Audit event domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import uuid4


class AuditEventType(StrEnum):
    """Privileged mutations recorded in a group's audit log."""

    MEMBER_JOINED = "member_joined"
    MEMBER_REMOVED = "member_removed"
    ADMIN_GRANTED = "admin_granted"
    ADMIN_REVOKED = "admin_revoked"
    GROUP_RENAMED = "group_renamed"
    RESERVATION_OWNER_REASSIGNED = "reservation_owner_reassigned"
    RESERVATION_CREATED = "reservation_created"
    RESERVATION_UPDATED = "reservation_updated"
    RESERVATION_CANCELLED = "reservation_cancelled"


@dataclass(frozen=True)
class AuditEvent:
    """Immutable record of a privileged group or reservation mutation."""

    group_id: str
    type: AuditEventType
    actor_id: str
    actor_name: str
    target_id: str | None = None
    target_name: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=datetime.utcnow)
