"""SQLAlchemy Unit of Work implementation."""

from typing import Any, Optional

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from core.exceptions import TransactionConflictError
from infrastructure.database.repositories.sqlalchemy_audit_repo import SQLAlchemyAuditRepository
from infrastructure.database.repositories.sqlalchemy_group_repo import SQLAlchemyGroupRepository
from infrastructure.database.repositories.sqlalchemy_invitation_repo import SQLAlchemyInvitationRepository
from infrastructure.database.repositories.sqlalchemy_reservation_repo import (
    SQLAlchemyReservationRepository,
)


def _is_transient(exc: BaseException | None) -> bool:
    if isinstance(exc, (StaleDataError, OperationalError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class SQLAlchemyUnitOfWork:
    """Unit of Work implementation using SQLAlchemy.

    Lost optimistic-version races and transient driver failures surface as
    TransactionConflictError so callers can retry the whole transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    def _require_session(self) -> AsyncSession:
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return self._session

    @property
    def groups(self) -> SQLAlchemyGroupRepository:
        """Get group repository."""
        return SQLAlchemyGroupRepository(self._require_session())

    @property
    def reservations(self) -> SQLAlchemyReservationRepository:
        """Get reservation repository."""
        return SQLAlchemyReservationRepository(self._require_session())

    @property
    def invitations(self) -> SQLAlchemyInvitationRepository:
        """Get invitation repository."""
        return SQLAlchemyInvitationRepository(self._require_session())

    @property
    def audit_events(self) -> SQLAlchemyAuditRepository:
        """Get audit event repository."""
        return SQLAlchemyAuditRepository(self._require_session())

    async def commit(self) -> None:
        """Commit the current transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        if self._session:
            await self._session.rollback()

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        """Enter the context manager and create session."""
        self._session = self._session_factory()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        """Exit the context manager and cleanup."""
        if self._session:
            try:
                if exc_type:
                    await self.rollback()
            finally:
                await self._session.close()
                self._session = None

        if _is_transient(exc_val):
            raise TransactionConflictError(str(exc_val)) from exc_val
