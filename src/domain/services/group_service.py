"""Group service layer with business logic."""

from collections.abc import Awaitable, Callable

import structlog

from core.exceptions import (
    AuthorizationError,
    GroupNotFoundError,
    NotGroupAdminError,
    OwnerImmutableError,
)
from domain.entities.audit import AuditEvent, AuditEventType
from domain.entities.group import DEFAULT_GROUP_NAME, Group, resolve_member_name
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.audit_service import AuditService
from domain.services.authorization import is_admin, is_member, is_owner
from domain.services.reconciliation_service import ReconciliationService
from domain.services.transaction import run_in_transaction

logger = structlog.get_logger()

ADMIN_FALLBACK_NAME = "Admin"


async def _load_live_group(uow: IUnitOfWork, group_id: str) -> Group:
    group = await uow.groups.get(group_id, for_update=True)
    if not group or group.is_deleted:
        raise GroupNotFoundError(group_id)
    return group


class GroupService:
    """Service layer for group membership and administration.

    Every mutation re-reads the group inside its own transaction, checks the
    actor's role against that snapshot and persists the whole document.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        audit_service: AuditService | None = None,
        reconciliation_service: ReconciliationService | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._audit = audit_service
        self._reconciliation = reconciliation_service

    async def get_by_id(self, group_id: str, actor_id: str) -> Group:
        """Get a group by ID. Requires membership."""
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group or group.is_deleted:
                raise GroupNotFoundError(group_id)
            if not is_member(group, actor_id):
                raise AuthorizationError("You are not a member of this group")
            return group

    async def create(
        self, name: str, actor_id: str, display_name: str | None = None
    ) -> Group:
        """Create a group with the actor as owner, sole admin and sole member."""
        group = Group.create(name, actor_id, display_name)

        async def work(uow: IUnitOfWork) -> Group:
            return await uow.groups.create(group)

        created = await run_in_transaction(self._uow_factory, work)
        logger.info("group_created", group_id=created.id, owner_actor_id=actor_id)
        return created

    async def ensure_default_group(
        self, actor_id: str, display_name: str | None = None
    ) -> Group:
        """Return the actor's first live group, creating "Mi grupo" if none.

        An actor found only as a plain member of that group is promoted to
        admin, matching how the first group used to be provisioned.
        """

        async def work(uow: IUnitOfWork) -> Group:
            groups = await uow.groups.list_for_actor(actor_id)
            live = sorted(
                (g for g in groups if not g.is_deleted), key=lambda g: g.created_at
            )
            if not live:
                return await uow.groups.create(
                    Group.create(DEFAULT_GROUP_NAME, actor_id, display_name)
                )

            group = await uow.groups.get(live[0].id, for_update=True) or live[0]
            changed = False
            if not is_admin(group, actor_id):
                group.add_member(actor_id, display_name)
                group.set_admin(actor_id, True)
                changed = True
            elif display_name and not (group.member_display_names.get(actor_id) or "").strip():
                group.add_member(actor_id, display_name)
                changed = True
            return await uow.groups.update(group) if changed else group

        return await run_in_transaction(self._uow_factory, work)

    async def rename(self, group_id: str, name: str, actor_id: str) -> Group:
        """Rename a group. Admin only.

        The cached group name on reservations is reconciled after commit;
        a failed reconciliation never fails the rename.
        """
        previous_name = ""

        async def work(uow: IUnitOfWork) -> Group:
            nonlocal previous_name
            group = await _load_live_group(uow, group_id)
            if not is_admin(group, actor_id):
                raise NotGroupAdminError(group_id)
            previous_name = group.rename(name)
            return await uow.groups.update(group)

        group = await run_in_transaction(self._uow_factory, work)

        if self._reconciliation:
            try:
                await self._reconciliation.reconcile_group_name(group_id)
            except Exception:
                logger.warning(
                    "group_name_reconciliation_failed",
                    group_id=group_id,
                    exc_info=True,
                )

        await self._emit(
            group,
            AuditEventType.GROUP_RENAMED,
            actor_id,
            target_id=group_id,
            target_name=group.name,
            metadata={"previousName": previous_name, "newName": group.name},
        )
        logger.info("group_renamed", group_id=group_id, actor_id=actor_id)
        return group

    async def set_member_admin(
        self,
        group_id: str,
        target_actor_id: str,
        make_admin: bool,
        actor_id: str,
    ) -> Group:
        """Grant or revoke admin rights on a member. Admin only."""
        changed = False

        async def work(uow: IUnitOfWork) -> Group:
            nonlocal changed
            group = await _load_live_group(uow, group_id)
            if not is_admin(group, actor_id):
                raise NotGroupAdminError(group_id)
            changed = group.set_admin(target_actor_id, make_admin)
            return await uow.groups.update(group)

        group = await run_in_transaction(self._uow_factory, work)

        if changed:
            await self._emit(
                group,
                AuditEventType.ADMIN_GRANTED if make_admin else AuditEventType.ADMIN_REVOKED,
                actor_id,
                target_id=target_actor_id,
                target_name=group.display_name_for(target_actor_id),
            )
        return group

    async def remove_member(
        self, group_id: str, target_actor_id: str, actor_id: str
    ) -> Group:
        """Evict a member from a group. Admin only; the owner cannot be removed."""
        target_name = ""

        async def work(uow: IUnitOfWork) -> Group:
            nonlocal target_name
            group = await _load_live_group(uow, group_id)
            if not is_admin(group, actor_id):
                raise NotGroupAdminError(group_id)
            target_name = group.display_name_for(target_actor_id)
            group.remove_member(target_actor_id)
            return await uow.groups.update(group)

        group = await run_in_transaction(self._uow_factory, work)

        await self._emit(
            group,
            AuditEventType.MEMBER_REMOVED,
            actor_id,
            target_id=target_actor_id,
            target_name=target_name,
        )
        return group

    async def leave_group(self, group_id: str, actor_id: str) -> Group:
        """Remove the actor from a group they belong to. The owner cannot leave."""
        actor_name = ""

        async def work(uow: IUnitOfWork) -> Group:
            nonlocal actor_name
            group = await _load_live_group(uow, group_id)
            if is_owner(group, actor_id):
                raise OwnerImmutableError()
            actor_name = group.display_name_for(actor_id)
            group.remove_member(actor_id)
            return await uow.groups.update(group)

        group = await run_in_transaction(self._uow_factory, work)

        await self._emit(
            group,
            AuditEventType.MEMBER_REMOVED,
            actor_id,
            actor_name=actor_name,
            target_id=actor_id,
            target_name=actor_name,
        )
        return group

    async def delete_group(self, group_id: str, actor_id: str) -> Group:
        """Soft-delete a group. Owner only."""

        async def work(uow: IUnitOfWork) -> Group:
            group = await _load_live_group(uow, group_id)
            if not is_owner(group, actor_id):
                raise AuthorizationError("Only the group owner can delete the group")
            group.soft_delete(actor_id)
            return await uow.groups.update(group)

        group = await run_in_transaction(self._uow_factory, work)
        logger.info("group_deleted", group_id=group_id, actor_id=actor_id)
        return group

    async def add_member(
        self,
        group_id: str,
        actor_id: str,
        display_name: str | None = None,
        guard: Callable[[IUnitOfWork], Awaitable[object]] | None = None,
    ) -> Group:
        """Add the actor to a group (idempotent).

        Used when a group invite is accepted. ``guard`` runs first inside the
        same transaction and aborts it by raising. ``member_joined`` is audited
        only when the actor was not a member before.
        """
        added = False

        async def work(uow: IUnitOfWork) -> Group:
            nonlocal added
            if guard is not None:
                await guard(uow)
            group = await _load_live_group(uow, group_id)
            added = group.add_member(actor_id, display_name)
            return await uow.groups.update(group)

        group = await run_in_transaction(self._uow_factory, work)

        if added:
            name = group.display_name_for(actor_id)
            await self._emit(
                group,
                AuditEventType.MEMBER_JOINED,
                actor_id,
                actor_name=name,
                target_id=actor_id,
                target_name=name,
            )
        return group

    # --- Internal helpers ---

    async def _emit(
        self,
        group: Group,
        event_type: AuditEventType,
        actor_id: str,
        actor_name: str | None = None,
        target_id: str | None = None,
        target_name: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        if not self._audit:
            return
        await self._audit.emit(
            AuditEvent(
                group_id=group.id,
                type=event_type,
                actor_id=actor_id,
                actor_name=actor_name
                or resolve_member_name(group, actor_id, ADMIN_FALLBACK_NAME),
                target_id=target_id,
                target_name=target_name,
                metadata=metadata or {},
            )
        )
