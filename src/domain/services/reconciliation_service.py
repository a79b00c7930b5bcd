"""Batched reconciliation of denormalized and legacy reservation fields."""

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from core.config import settings
from domain.entities.group import DEFAULT_GROUP_NAME, Group
from domain.entities.reservation import (
    DEFAULT_GROUP_ID,
    Reservation,
    VisibilityScope,
    is_real_group_id,
    resolve_creator_actor_id,
)
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.transaction import run_in_transaction

logger = structlog.get_logger()


def _chunks(items: list, size: int) -> list[list]:
    return [items[i : i + size] for i in range(0, len(items), size)]


@dataclass
class BackfillReport:
    """Outcome counters of a legacy reservation backfill run."""

    scanned: int = 0
    updated: int = 0
    creators_filled: int = 0
    scopes_filled: int = 0
    group_names_fixed: int = 0
    moved_to_fallback_group: int = 0
    dry_run: bool = False

    def add(self, other: "BackfillReport") -> None:
        """Fold a committed batch into the running totals."""
        self.updated += other.updated
        self.creators_filled += other.creators_filled
        self.scopes_filled += other.scopes_filled
        self.group_names_fixed += other.group_names_fixed
        self.moved_to_fallback_group += other.moved_to_fallback_group


class ReconciliationService:
    """Idempotent jobs that repair copies of data kept on reservations.

    Every job re-reads the source of truth when it runs, so re-running it
    after a partial failure converges to the same result.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        batch_size: int | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._batch_size = batch_size or settings.reconciliation_batch_size

    async def reconcile_group_name(self, group_id: str) -> int:
        """Copy the group's current name onto every reservation referencing it.

        Returns:
            Number of reservations rewritten.
        """
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group:
                return 0
            name = group.name
            ids = await uow.reservations.list_ids_for_group(group_id)

        updated = 0
        for chunk in _chunks(ids, self._batch_size):
            async with self._uow_factory() as uow:
                updated += await uow.reservations.set_group_name(chunk, name)
                await uow.commit()

        logger.info(
            "group_name_reconciled",
            group_id=group_id,
            reservations=updated,
        )
        return updated

    async def backfill_legacy_reservations(
        self,
        dry_run: bool = False,
        fallback_to_first_group: bool = False,
    ) -> BackfillReport:
        """Persist normalized creator, scope and group-name fields.

        Each batch re-reads and locks its reservations inside one transaction,
        so signups or cancellations committed while the job runs are kept.

        ``fallback_to_first_group`` re-homes ungrouped legacy reservations not
        explicitly stored as link-only into the creator's oldest group (a
        "Mi grupo" named group first). It is a one-off migration aid and never
        applied to new data.
        """
        report = BackfillReport(dry_run=dry_run)

        async with self._uow_factory() as uow:
            ids = await uow.reservations.list_ids()
        report.scanned = len(ids)

        for chunk in _chunks(ids, self._batch_size):

            async def work(uow: IUnitOfWork, chunk: list[str] = chunk) -> BackfillReport:
                return await self._backfill_batch(
                    uow, chunk, dry_run, fallback_to_first_group
                )

            if dry_run:
                async with self._uow_factory() as uow:
                    batch = await work(uow)
            else:
                batch = await run_in_transaction(self._uow_factory, work)
            report.add(batch)

        logger.info(
            "legacy_reservations_backfilled",
            dry_run=dry_run,
            scanned=report.scanned,
            updated=report.updated,
            moved_to_fallback_group=report.moved_to_fallback_group,
        )
        return report

    async def _backfill_batch(
        self,
        uow: IUnitOfWork,
        ids: list[str],
        dry_run: bool,
        fallback_to_first_group: bool,
    ) -> BackfillReport:
        batch = BackfillReport(dry_run=dry_run)
        groups_by_id: dict[str, Group | None] = {}
        fallback_groups: dict[str, Group | None] = {}

        for reservation_id in ids:
            reservation = await uow.reservations.get(reservation_id, for_update=not dry_run)
            if reservation is None:
                continue

            gid = reservation.group_id
            if is_real_group_id(gid) and gid not in groups_by_id:
                groups_by_id[gid] = await uow.groups.get(gid)
            creator = resolve_creator_actor_id(reservation)
            if fallback_to_first_group and creator and creator not in fallback_groups:
                fallback_groups[creator] = self._pick_fallback_group(
                    await uow.groups.list_for_actor(creator), creator
                )

            if not self._normalize(reservation, groups_by_id.get(gid), fallback_groups, batch):
                continue
            batch.updated += 1
            if not dry_run:
                reservation.touch()
                await uow.reservations.update(reservation)

        return batch

    @staticmethod
    def _pick_fallback_group(groups: list[Group], actor_id: str) -> Group | None:
        candidates = [
            g for g in groups if not g.is_deleted and actor_id in g.member_actor_ids
        ]
        candidates.sort(
            key=lambda g: (g.name.strip().lower() != DEFAULT_GROUP_NAME.lower(), g.created_at)
        )
        return candidates[0] if candidates else None

    @staticmethod
    def _normalize(
        reservation: Reservation,
        group: Group | None,
        fallback_groups: dict[str, Group | None],
        report: BackfillReport,
    ) -> bool:
        changed = False
        scope_missing = not reservation.visibility_scope_stored

        if not reservation.created_by_actor_id and reservation.created_by and reservation.created_by.id:
            reservation.created_by_actor_id = reservation.created_by.id
            report.creators_filled += 1
            changed = True

        if group is not None:
            if reservation.group_name != group.name:
                reservation.group_name = group.name
                report.group_names_fixed += 1
                changed = True
            if scope_missing or reservation.visibility_scope != VisibilityScope.GROUP:
                reservation.visibility_scope = VisibilityScope.GROUP
                reservation.visibility_scope_stored = True
                report.scopes_filled += 1
                changed = True
            return changed

        explicit_link_only = (
            not scope_missing and reservation.visibility_scope == VisibilityScope.LINK_ONLY
        )
        creator = resolve_creator_actor_id(reservation)
        fallback = fallback_groups.get(creator) if creator else None
        if not is_real_group_id(reservation.group_id) and fallback is not None and not explicit_link_only:
            reservation.group_id = fallback.id
            reservation.group_name = fallback.name
            if scope_missing or reservation.visibility_scope != VisibilityScope.GROUP:
                report.scopes_filled += 1
            reservation.visibility_scope = VisibilityScope.GROUP
            reservation.visibility_scope_stored = True
            report.moved_to_fallback_group += 1
            return True

        if (
            scope_missing
            or reservation.visibility_scope != VisibilityScope.LINK_ONLY
            or reservation.group_id != DEFAULT_GROUP_ID
        ):
            reservation.visibility_scope = VisibilityScope.LINK_ONLY
            reservation.visibility_scope_stored = True
            reservation.group_id = DEFAULT_GROUP_ID
            reservation.group_name = None
            report.scopes_filled += 1
            changed = True
        return changed
