"""Invitation repository protocol."""

from typing import Protocol

from domain.entities.invitation import Invitation, InvitationStatus


class IInvitationRepository(Protocol):
    """Repository interface for Invitation entities."""

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation."""
        ...

    async def get_by_token(self, token: str, for_update: bool = False) -> Invitation | None:
        """Get an invitation of either kind by its token, optionally locking it."""
        ...

    async def list_for_group(self, group_id: str) -> list[Invitation]:
        """Get all invitations issued for a group."""
        ...

    async def update_status(self, token: str, status: InvitationStatus) -> Invitation:
        """Update the status of an invitation."""
        ...
