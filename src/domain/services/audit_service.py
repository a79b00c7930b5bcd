"""Audit service for recording and querying group audit events."""

import asyncio
from collections.abc import Callable

import structlog

from core.config import settings
from core.exceptions import AuthorizationError, GroupNotFoundError
from domain.entities.audit import AuditEvent
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.authorization import is_member

logger = structlog.get_logger()


def clamp_limit(value: int | None, default: int, maximum: int) -> int:
    """Clamp a caller-supplied page size into [1, maximum]."""
    if value is None:
        return default
    return min(max(value, 1), maximum)


class AuditService:
    """Best-effort audit sink plus the group activity query.

    Writes happen in their own unit of work after the triggering mutation has
    committed. Failures are logged and dropped, never raised.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        background: bool | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._background = settings.audit_background if background is None else background
        self._pending: set[asyncio.Task[None]] = set()

    async def record(self, event: AuditEvent) -> None:
        """Persist one event, swallowing any failure."""
        try:
            async with self._uow_factory() as uow:
                await uow.audit_events.create(event)
                await uow.commit()
        except Exception:
            logger.warning(
                "audit_write_failed",
                group_id=event.group_id,
                event_type=event.type.value,
                exc_info=True,
            )

    async def emit(self, event: AuditEvent) -> None:
        """Fire-and-forget entry point used by the aggregates."""
        if not self._background:
            await self.record(event)
            return
        task = asyncio.create_task(self.record(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight background writes (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def list_for_group(
        self,
        group_id: str,
        actor_id: str,
        limit: int | None = None,
    ) -> list[AuditEvent]:
        """Get a group's audit events, newest first. Requires membership.

        Args:
            group_id: The group to read events for.
            actor_id: The requesting actor (owner, admin or member).
            limit: Requested page size, clamped to the configured maximum.

        Returns:
            Audit events sorted by creation time, newest first.
        """
        page_size = clamp_limit(limit, settings.audit_default_limit, settings.audit_max_limit)
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group or group.is_deleted:
                raise GroupNotFoundError(group_id)
            if not is_member(group, actor_id):
                raise AuthorizationError("You cannot view this group's activity")

            events = await uow.audit_events.get_for_group(group_id, limit=page_size)

        return sorted(events, key=lambda e: e.created_at, reverse=True)[:page_size]
