"""SQLAlchemy implementation of the group audit log repository."""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.audit import AuditEvent, AuditEventType
from infrastructure.database.models import AuditEventModel


class SQLAlchemyAuditRepository:
    """SQLAlchemy implementation of IAuditRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, event: AuditEvent) -> AuditEvent:
        """Append a new audit event."""
        model = self._to_model(event)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_for_group(self, group_id: str, limit: int = 30) -> List[AuditEvent]:
        """Get audit events for a group, ordered by newest first."""
        stmt = (
            select(AuditEventModel)
            .where(AuditEventModel.group_id == group_id)
            .order_by(AuditEventModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    def _to_entity(self, model: AuditEventModel) -> AuditEvent:
        """Convert ORM model to domain entity."""
        return AuditEvent(
            id=model.id,
            group_id=model.group_id,
            type=AuditEventType(model.type),
            actor_id=model.actor_id,
            actor_name=model.actor_name,
            target_id=model.target_id,
            target_name=model.target_name,
            metadata={str(k): str(v) for k, v in (model.metadata_ or {}).items()},
            created_at=model.created_at,
        )

    def _to_model(self, entity: AuditEvent) -> AuditEventModel:
        """Convert domain entity to ORM model."""
        return AuditEventModel(
            id=entity.id,
            group_id=entity.group_id,
            type=entity.type.value,
            actor_id=entity.actor_id,
            actor_name=entity.actor_name,
            target_id=entity.target_id,
            target_name=entity.target_name,
            metadata_=dict(entity.metadata),
            created_at=entity.created_at,
        )
