"""SQLAlchemy implementation of Group repository."""

from sqlalchemy import or_, select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.group import Group
from infrastructure.database.models import GroupModel


def _str_list(value: object) -> list[str]:
    return [v for v in value if isinstance(v, str)] if isinstance(value, list) else []


def _str_map(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


class SQLAlchemyGroupRepository:
    """SQLAlchemy implementation of IGroupRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_model(self, id: str, for_update: bool = False) -> GroupModel | None:
        stmt = select(GroupModel).where(GroupModel.id == id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, id: str, for_update: bool = False) -> Group | None:
        """Get a group by ID."""
        model = await self._get_model(id, for_update)
        return self._to_entity(model) if model else None

    async def list_for_actor(self, actor_id: str) -> list[Group]:
        """Get groups where the actor is owner, admin or member."""
        if self._session.bind.dialect.name == "postgresql":
            stmt = select(GroupModel).where(
                or_(
                    GroupModel.owner_actor_id == actor_id,
                    type_coerce(GroupModel.admin_actor_ids, JSONB).contains([actor_id]),
                    type_coerce(GroupModel.member_actor_ids, JSONB).contains([actor_id]),
                )
            )
            result = await self._session.execute(stmt.order_by(GroupModel.created_at))
            return [self._to_entity(model) for model in result.scalars()]

        # No JSON containment operator outside PostgreSQL; filter in memory.
        result = await self._session.execute(select(GroupModel).order_by(GroupModel.created_at))
        groups = [self._to_entity(model) for model in result.scalars()]
        return [
            g
            for g in groups
            if g.owner_actor_id == actor_id
            or actor_id in g.admin_actor_ids
            or actor_id in g.member_actor_ids
        ]

    async def create(self, group: Group) -> Group:
        """Create a new group."""
        model = self._to_model(group)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def update(self, group: Group) -> Group:
        """Write the whole group document back."""
        model = await self._get_model(group.id)

        if not model:
            raise ValueError(f"Group {group.id} not found")

        model.name = group.name
        model.owner_actor_id = group.owner_actor_id
        model.admin_actor_ids = list(group.admin_actor_ids)
        model.member_actor_ids = list(group.member_actor_ids)
        model.member_display_names = dict(group.member_display_names)
        model.is_deleted = group.is_deleted
        model.deleted_at = group.deleted_at
        model.deleted_by_actor_id = group.deleted_by_actor_id
        model.updated_at = group.updated_at

        await self._session.flush()
        return self._to_entity(model)

    def _to_entity(self, model: GroupModel) -> Group:
        """Convert ORM model to domain entity, defaulting malformed fields."""
        return Group(
            id=model.id,
            name=model.name,
            owner_actor_id=model.owner_actor_id,
            admin_actor_ids=_str_list(model.admin_actor_ids),
            member_actor_ids=_str_list(model.member_actor_ids),
            member_display_names=_str_map(model.member_display_names),
            is_deleted=bool(model.is_deleted),
            deleted_at=model.deleted_at,
            deleted_by_actor_id=model.deleted_by_actor_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Group) -> GroupModel:
        """Convert domain entity to ORM model."""
        return GroupModel(
            id=entity.id,
            name=entity.name,
            owner_actor_id=entity.owner_actor_id,
            admin_actor_ids=list(entity.admin_actor_ids),
            member_actor_ids=list(entity.member_actor_ids),
            member_display_names=dict(entity.member_display_names),
            is_deleted=entity.is_deleted,
            deleted_at=entity.deleted_at,
            deleted_by_actor_id=entity.deleted_by_actor_id,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
