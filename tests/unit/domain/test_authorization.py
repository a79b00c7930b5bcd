"""Unit tests for membership authorization predicates."""

import pytest

from domain.entities.group import Group
from domain.entities.reservation import (
    AttendanceStatus,
    CreatorRef,
    Reservation,
    VisibilityScope,
)
from domain.services.authorization import (
    can_access_reservation,
    can_join_reservation,
    can_manage_reservation,
    is_admin,
    is_member,
    is_owner,
    is_related_to_actor,
    is_reservation_creator,
)


@pytest.fixture
def group() -> Group:
    g = Group.create("G", "owner")
    g.add_member("admin")
    g.set_admin("admin", True)
    g.add_member("member")
    return g


@pytest.fixture
def reservation(group: Group) -> Reservation:
    r = Reservation(
        start_date_time="2099-01-01T10:00:00",
        created_by=CreatorRef(id="member", name="M"),
        created_by_actor_id="member",
    )
    r.move_to_group(group.id, group.name)
    return r


class TestRoles:
    def test_role_chain(self, group: Group):
        assert is_owner(group, "owner")
        assert is_admin(group, "owner") and is_member(group, "owner")
        assert is_admin(group, "admin") and not is_owner(group, "admin")
        assert is_member(group, "member") and not is_admin(group, "member")
        assert not is_member(group, "stranger")

    def test_empty_actor_is_never_owner(self, group: Group):
        assert not is_owner(group, "")


class TestReservationPredicates:
    def test_creator_uses_authoritative_field(self, reservation: Reservation):
        reservation.created_by = CreatorRef(id="someone-else", name="X")

        assert is_reservation_creator(reservation, "member")
        assert not is_reservation_creator(reservation, "someone-else")

    def test_related_via_legacy_creator_guest_or_signup(self, reservation: Reservation):
        reservation.created_by_actor_id = None
        assert is_related_to_actor(reservation, "member")

        reservation.grant_guest_access("guest")
        assert is_related_to_actor(reservation, "guest")

        reservation.upsert_signup("player", "P", AttendanceStatus.MAYBE)
        assert is_related_to_actor(reservation, "player")

        assert not is_related_to_actor(reservation, "stranger")

    def test_access(self, group: Group, reservation: Reservation):
        assert can_access_reservation(reservation, "admin", {group.id})
        assert not can_access_reservation(reservation, "stranger", set())

        reservation.move_to_link_only()
        assert can_access_reservation(reservation, "stranger", set())

    def test_join(self, reservation: Reservation):
        assert can_join_reservation(reservation, "admin")

        reservation.upsert_signup("admin", "A", AttendanceStatus.CONFIRMED)
        assert not can_join_reservation(reservation, "admin")

        reservation.upsert_signup("admin", "A", AttendanceStatus.CANCELLED)
        assert can_join_reservation(reservation, "admin")

        reservation.cancel()
        assert not can_join_reservation(reservation, "admin")

    def test_manage(self, group: Group, reservation: Reservation):
        assert can_manage_reservation(reservation, "member", None)
        assert can_manage_reservation(reservation, "admin", group)
        assert not can_manage_reservation(reservation, "admin", None)

        other = Group.create("Other", "admin")
        assert not can_manage_reservation(reservation, "admin", other)

        reservation.visibility_scope = VisibilityScope.LINK_ONLY
        assert not can_manage_reservation(reservation, "admin", group)
