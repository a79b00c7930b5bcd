"""Invitation domain entity."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import uuid4

from core.config import settings


class InviteTargetType(StrEnum):
    """What an invite grants on redemption."""

    GROUP = "group"
    RESERVATION = "reservation"


class InvitationStatus(StrEnum):
    """Status of an invite token."""

    ACTIVE = "active"
    REVOKED = "revoked"


class InviteChannel(StrEnum):
    """Channel the invite link was shared through."""

    WHATSAPP = "whatsapp"
    EMAIL = "email"
    LINK = "link"


def normalize_channel(value: str | None) -> InviteChannel:
    """Map unknown channel names to LINK."""
    try:
        return InviteChannel((value or "").strip().lower())
    except ValueError:
        return InviteChannel.LINK


def _default_expiry() -> datetime:
    return datetime.utcnow() + timedelta(days=settings.invite_expiry_days)


@dataclass
class Invitation:
    """A time-boxed invite token.

    The token doubles as the primary key. Tokens stay redeemable by any
    number of actors until they expire or get revoked.
    """

    target_type: InviteTargetType
    group_id: str
    created_by_actor_id: str
    token: str = field(default_factory=lambda: str(uuid4()))
    reservation_id: str | None = None
    channel: InviteChannel = InviteChannel.LINK
    status: InvitationStatus = InvitationStatus.ACTIVE
    created_at: datetime = field(default_factory=datetime.utcnow)
    expires_at: datetime = field(default_factory=_default_expiry)

    def is_redeemable(self, now: datetime | None = None) -> bool:
        """Active and strictly before its expiry instant."""
        current = now or datetime.utcnow()
        return self.status == InvitationStatus.ACTIVE and current < self.expires_at
