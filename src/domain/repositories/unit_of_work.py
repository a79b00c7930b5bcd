"""Unit of Work protocol."""

from typing import Protocol

from domain.repositories.audit_repository import IAuditRepository
from domain.repositories.group_repository import IGroupRepository
from domain.repositories.invitation_repository import IInvitationRepository
from domain.repositories.reservation_repository import IReservationRepository


class IUnitOfWork(Protocol):
    """Unit of Work interface for managing transactions."""

    groups: IGroupRepository
    reservations: IReservationRepository
    invitations: IInvitationRepository
    audit_events: IAuditRepository

    async def commit(self) -> None:
        """Commit the current transaction."""
        ...

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        ...

    async def __aenter__(self) -> "IUnitOfWork":
        """Enter the context manager."""
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Exit the context manager."""
        ...
