"""Group repository protocol."""

from typing import Protocol

from domain.entities.group import Group


class IGroupRepository(Protocol):
    """Repository interface for Group documents."""

    async def get(self, id: str, for_update: bool = False) -> Group | None:
        """Get a group by ID, optionally locking it for the current transaction."""
        ...

    async def list_for_actor(self, actor_id: str) -> list[Group]:
        """Groups where the actor is owner, admin or member (deleted ones included)."""
        ...

    async def create(self, group: Group) -> Group:
        """Create a new group."""
        ...

    async def update(self, group: Group) -> Group:
        """Persist the full group snapshot."""
        ...
