"""SQLAlchemy implementation of Invitation repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.invitation import (
    Invitation,
    InvitationStatus,
    InviteTargetType,
    normalize_channel,
)
from infrastructure.database.models import InvitationModel


class SQLAlchemyInvitationRepository:
    """SQLAlchemy implementation of IInvitationRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation."""
        model = self._to_model(invitation)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_by_token(self, token: str, for_update: bool = False) -> Invitation | None:
        """Get an invitation of either kind by its token."""
        stmt = select(InvitationModel).where(InvitationModel.token == token)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_for_group(self, group_id: str) -> list[Invitation]:
        """Get all invitations issued for a group, newest first."""
        stmt = (
            select(InvitationModel)
            .where(InvitationModel.group_id == group_id)
            .order_by(InvitationModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def update_status(self, token: str, status: InvitationStatus) -> Invitation:
        """Update the status of an invitation."""
        stmt = select(InvitationModel).where(InvitationModel.token == token)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            raise ValueError(f"Invitation {token} not found")

        model.status = status.value
        await self._session.flush()
        return self._to_entity(model)

    def _to_entity(self, model: InvitationModel) -> Invitation:
        """Convert ORM model to domain entity."""
        return Invitation(
            token=model.token,
            target_type=InviteTargetType(model.target_type),
            group_id=model.group_id,
            reservation_id=model.reservation_id,
            created_by_actor_id=model.created_by_actor_id,
            channel=normalize_channel(model.channel),
            status=InvitationStatus(model.status),
            created_at=model.created_at,
            expires_at=model.expires_at,
        )

    def _to_model(self, entity: Invitation) -> InvitationModel:
        """Convert domain entity to ORM model."""
        return InvitationModel(
            token=entity.token,
            target_type=entity.target_type.value,
            group_id=entity.group_id,
            reservation_id=entity.reservation_id,
            created_by_actor_id=entity.created_by_actor_id,
            channel=entity.channel.value,
            status=entity.status.value,
            created_at=entity.created_at,
            expires_at=entity.expires_at,
        )
