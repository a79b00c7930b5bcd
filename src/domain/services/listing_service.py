"""Read-side listings filtered down to what an actor may see."""

from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from core.config import settings
from domain.entities.group import Group
from domain.entities.reservation import Reservation
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.audit_service import clamp_limit
from domain.services.authorization import can_access_reservation, is_member


class ListingMode(StrEnum):
    """Reservation listing modes."""

    ACTIVE = "active"
    HISTORY = "history"


def _start_key(reservation: Reservation) -> datetime:
    # Unparseable starts sort as the oldest possible instant.
    return reservation.starts_at or datetime.min


class ListingService:
    """Group and reservation listings for the calling actor."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    async def list_groups_for_actor(self, actor_id: str) -> list[Group]:
        """Live groups where the actor is owner, admin or member, sorted by name."""
        async with self._uow_factory() as uow:
            groups = await uow.groups.list_for_actor(actor_id)
        return self._visible_groups(groups, actor_id)

    async def list_reservations(
        self,
        actor_id: str,
        mode: ListingMode = ListingMode.ACTIVE,
        limit: int | None = None,
    ) -> list[Reservation]:
        """Reservations the actor may see.

        ``active`` returns active reservations ordered by start time.
        ``history`` returns reservations that already started, newest first,
        capped at ``limit``.
        """
        async with self._uow_factory() as uow:
            groups = self._visible_groups(await uow.groups.list_for_actor(actor_id), actor_id)
            allowed = {g.id for g in groups}

            merged: dict[str, Reservation] = {}
            for batch in (
                await uow.reservations.list_created_by(actor_id),
                await uow.reservations.list_with_participant(actor_id),
                await uow.reservations.list_for_groups(allowed) if allowed else [],
            ):
                for reservation in batch:
                    merged.setdefault(reservation.id, reservation)

        visible = [
            r for r in merged.values() if can_access_reservation(r, actor_id, allowed)
        ]

        if mode == ListingMode.HISTORY:
            now = self._clock()
            page_size = clamp_limit(
                limit, settings.history_default_limit, settings.history_max_limit
            )
            past = [r for r in visible if r.starts_at is not None and r.starts_at < now]
            past.sort(key=_start_key, reverse=True)
            return past[:page_size]

        active = [r for r in visible if not r.is_cancelled]
        active.sort(key=_start_key)
        return active

    @staticmethod
    def _visible_groups(groups: list[Group], actor_id: str) -> list[Group]:
        live = [g for g in groups if not g.is_deleted and is_member(g, actor_id)]
        return sorted(live, key=lambda g: g.name.lower())
