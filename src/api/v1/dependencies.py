"""Dependency injection factories for API v1."""

from functools import lru_cache
from typing import Callable

from domain.services.audit_service import AuditService
from domain.services.group_service import GroupService
from domain.services.invitation_service import InvitationService
from domain.services.listing_service import ListingService
from domain.services.reconciliation_service import ReconciliationService
from domain.services.reservation_service import ReservationService
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_audit_service() -> AuditService:
    """Get Audit service instance."""
    return AuditService(get_uow_factory())


@lru_cache
def get_reconciliation_service() -> ReconciliationService:
    """Get Reconciliation service instance."""
    return ReconciliationService(get_uow_factory())


@lru_cache
def get_group_service() -> GroupService:
    """Get Group service instance."""
    return GroupService(
        get_uow_factory(),
        audit_service=get_audit_service(),
        reconciliation_service=get_reconciliation_service(),
    )


@lru_cache
def get_reservation_service() -> ReservationService:
    """Get Reservation service instance."""
    return ReservationService(
        get_uow_factory(),
        audit_service=get_audit_service(),
    )


@lru_cache
def get_invitation_service() -> InvitationService:
    """Get Invitation service instance."""
    return InvitationService(
        get_uow_factory(),
        group_service=get_group_service(),
    )


@lru_cache
def get_listing_service() -> ListingService:
    """Get Listing service instance."""
    return ListingService(get_uow_factory())
