"""Reservation repository protocol."""

from collections.abc import Collection
from typing import Protocol

from domain.entities.reservation import Reservation


class IReservationRepository(Protocol):
    """Repository interface for Reservation documents."""

    async def get(self, id: str, for_update: bool = False) -> Reservation | None:
        """Get a reservation by ID, optionally locking it for the current transaction."""
        ...

    async def create(self, reservation: Reservation) -> Reservation:
        """Create a new reservation."""
        ...

    async def update(self, reservation: Reservation) -> Reservation:
        """Persist the full reservation snapshot."""
        ...

    async def list_created_by(self, actor_id: str) -> list[Reservation]:
        """Reservations created by the actor (current or legacy creator field)."""
        ...

    async def list_for_groups(self, group_ids: Collection[str]) -> list[Reservation]:
        """Reservations whose group id is in the given set."""
        ...

    async def list_with_participant(self, actor_id: str) -> list[Reservation]:
        """Reservations where the actor is a guest or has a signup."""
        ...

    async def list_ids_for_group(self, group_id: str) -> list[str]:
        """IDs of every reservation referencing a group."""
        ...

    async def list_ids(self) -> list[str]:
        """IDs of every reservation, oldest first; used by backfills."""
        ...

    async def set_group_name(self, ids: Collection[str], group_name: str) -> int:
        """Overwrite the cached group name on the given reservations."""
        ...
