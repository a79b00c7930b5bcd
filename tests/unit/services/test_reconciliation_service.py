"""Unit tests for ReconciliationService."""

from datetime import timedelta

import pytest

from domain.entities.group import Group
from domain.entities.reservation import (
    DEFAULT_GROUP_ID,
    AttendanceStatus,
    CreatorRef,
    Reservation,
    VisibilityScope,
    infer_visibility_scope,
)
from domain.services.reconciliation_service import ReconciliationService
from tests.unit.conftest import FakeUnitOfWork


def _legacy(
    creator: str,
    group_id: str = DEFAULT_GROUP_ID,
    scope: VisibilityScope | None = None,
    stored: bool = False,
) -> Reservation:
    """A reservation as read from a row written before the current fields existed."""
    return Reservation(
        start_date_time="2025-01-01T10:00:00",
        created_by=CreatorRef(id=creator, name="Legacy"),
        group_id=group_id,
        visibility_scope=scope or infer_visibility_scope(None, group_id),
        visibility_scope_stored=stored,
    )


def _seed(uow: FakeUnitOfWork, *reservations: Reservation) -> None:
    by_id = {r.id: r for r in reservations}
    uow.reservations.list_ids.return_value = list(by_id)
    uow.reservations.get.side_effect = lambda id, for_update=False: by_id.get(id)


class TestReconcileGroupName:
    @pytest.mark.asyncio
    async def test_rewrites_in_batches(self, uow: FakeUnitOfWork, group: Group):
        uow.groups.get.return_value = group
        uow.reservations.list_ids_for_group.return_value = ["r1", "r2", "r3"]
        uow.reservations.set_group_name.side_effect = lambda ids, name: len(ids)
        service = ReconciliationService(lambda: uow, batch_size=2)

        updated = await service.reconcile_group_name(group.id)

        assert updated == 3
        calls = uow.reservations.set_group_name.await_args_list
        assert [c.args for c in calls] == [
            (["r1", "r2"], "Padel Martes"),
            (["r3"], "Padel Martes"),
        ]

    @pytest.mark.asyncio
    async def test_missing_group_is_noop(self, uow: FakeUnitOfWork):
        service = ReconciliationService(lambda: uow)

        assert await service.reconcile_group_name("missing") == 0
        uow.reservations.set_group_name.assert_not_awaited()


class TestBackfillLegacyReservations:
    @pytest.mark.asyncio
    async def test_fills_creator_and_group_fields(
        self, uow: FakeUnitOfWork, group: Group, member_id: str
    ):
        stale = _legacy(member_id, group_id=group.id, scope=VisibilityScope.LINK_ONLY)
        stale.group_name = "Old name"
        _seed(uow, stale)
        uow.groups.get.return_value = group
        service = ReconciliationService(lambda: uow)

        report = await service.backfill_legacy_reservations()

        assert report.scanned == 1
        assert report.updated == 1
        assert report.creators_filled == 1
        assert report.group_names_fixed == 1
        assert report.scopes_filled == 1
        assert stale.created_by_actor_id == member_id
        assert stale.group_name == "Padel Martes"
        assert stale.visibility_scope == VisibilityScope.GROUP
        uow.reservations.update.assert_awaited_once_with(stale)
        assert uow.committed

    @pytest.mark.asyncio
    async def test_writes_the_copy_read_inside_the_batch(
        self, uow: FakeUnitOfWork, member_id: str
    ):
        scanned = _legacy(member_id)
        current = _legacy(member_id)
        current.id = scanned.id
        current.upsert_signup(member_id, "Mateo", AttendanceStatus.CONFIRMED)
        uow.reservations.list_ids.return_value = [scanned.id]
        uow.reservations.get.return_value = current
        service = ReconciliationService(lambda: uow)

        await service.backfill_legacy_reservations()

        uow.reservations.get.assert_awaited_once_with(scanned.id, for_update=True)
        written = uow.reservations.update.await_args.args[0]
        assert written is current
        assert [s.actor_id for s in written.signups] == [member_id]

    @pytest.mark.asyncio
    async def test_missing_scope_on_grouped_row_is_persisted(
        self, uow: FakeUnitOfWork, group: Group, member_id: str
    ):
        row = _legacy(member_id, group_id=group.id)
        row.created_by_actor_id = member_id
        row.group_name = group.name
        _seed(uow, row)
        uow.groups.get.return_value = group

        report = await ReconciliationService(lambda: uow).backfill_legacy_reservations()

        assert row.visibility_scope == VisibilityScope.GROUP
        assert report.scopes_filled == 1
        assert report.updated == 1

    @pytest.mark.asyncio
    async def test_ungrouped_reservation_becomes_link_only(
        self, uow: FakeUnitOfWork, member_id: str
    ):
        orphan = _legacy(member_id, group_id="", scope=VisibilityScope.GROUP, stored=True)
        _seed(uow, orphan)
        service = ReconciliationService(lambda: uow)

        await service.backfill_legacy_reservations()

        assert orphan.group_id == DEFAULT_GROUP_ID
        assert orphan.visibility_scope == VisibilityScope.LINK_ONLY

    @pytest.mark.asyncio
    async def test_unscoped_orphan_moves_to_default_named_group(
        self, uow: FakeUnitOfWork, owner_id: str
    ):
        oldest = Group.create("Amigos", owner_id)
        preferred = Group.create("Mi grupo", owner_id)
        preferred.created_at = oldest.created_at + timedelta(days=3)
        orphan = _legacy(owner_id)
        assert orphan.visibility_scope == VisibilityScope.LINK_ONLY
        _seed(uow, orphan)
        uow.groups.list_for_actor.return_value = [oldest, preferred]
        service = ReconciliationService(lambda: uow)

        report = await service.backfill_legacy_reservations(fallback_to_first_group=True)

        assert report.moved_to_fallback_group == 1
        assert report.scopes_filled == 1
        assert orphan.group_id == preferred.id
        assert orphan.group_name == "Mi grupo"
        assert orphan.visibility_scope == VisibilityScope.GROUP

    @pytest.mark.asyncio
    async def test_explicit_link_only_is_never_moved_into_a_group(
        self, uow: FakeUnitOfWork, owner_id: str
    ):
        shared = _legacy(owner_id, scope=VisibilityScope.LINK_ONLY, stored=True)
        shared.created_by_actor_id = owner_id
        _seed(uow, shared)
        uow.groups.list_for_actor.return_value = [Group.create("Amigos", owner_id)]
        service = ReconciliationService(lambda: uow)

        report = await service.backfill_legacy_reservations(fallback_to_first_group=True)

        assert report.updated == 0
        assert shared.group_id == DEFAULT_GROUP_ID

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, uow: FakeUnitOfWork, member_id: str):
        row = _legacy(member_id)
        _seed(uow, row)
        service = ReconciliationService(lambda: uow)

        report = await service.backfill_legacy_reservations(dry_run=True)

        assert report.dry_run
        assert report.updated == 1
        uow.reservations.get.assert_awaited_once_with(row.id, for_update=False)
        uow.reservations.update.assert_not_awaited()
        assert not uow.committed

    @pytest.mark.asyncio
    async def test_batches_share_one_report(self, uow: FakeUnitOfWork, member_id: str):
        _seed(uow, *(_legacy(member_id) for _ in range(3)))
        service = ReconciliationService(lambda: uow, batch_size=2)

        report = await service.backfill_legacy_reservations()

        assert report.scanned == 3
        assert report.updated == 3
        assert report.creators_filled == 3
        assert uow.reservations.update.await_count == 3

    @pytest.mark.asyncio
    async def test_deleted_between_scan_and_batch_is_skipped(self, uow: FakeUnitOfWork):
        uow.reservations.list_ids.return_value = ["gone"]
        service = ReconciliationService(lambda: uow)

        report = await service.backfill_legacy_reservations()

        assert report.scanned == 1
        assert report.updated == 0
        uow.reservations.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_second_run_converges(self, uow: FakeUnitOfWork, group: Group, member_id: str):
        stale = _legacy(member_id, group_id=group.id)
        _seed(uow, stale)
        uow.groups.get.return_value = group
        service = ReconciliationService(lambda: uow)

        await service.backfill_legacy_reservations()
        report = await service.backfill_legacy_reservations()

        assert report.updated == 0
