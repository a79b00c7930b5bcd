"""Membership authorization predicates.

Pure functions over group and reservation snapshots. They never raise and
never mutate; services call them inside the same unit of work that performs
the write and translate a False into the matching exception.
"""

from collections.abc import Collection

from domain.entities.group import Group
from domain.entities.reservation import (
    AttendanceStatus,
    Reservation,
    VisibilityScope,
    resolve_creator_actor_id,
)


def is_owner(group: Group, actor_id: str) -> bool:
    return bool(actor_id) and group.owner_actor_id == actor_id


def is_admin(group: Group, actor_id: str) -> bool:
    """Owner or listed admin."""
    return is_owner(group, actor_id) or actor_id in group.admin_actor_ids


def is_member(group: Group, actor_id: str) -> bool:
    """Admin or listed member."""
    return is_admin(group, actor_id) or actor_id in group.member_actor_ids


def is_reservation_creator(reservation: Reservation, actor_id: str) -> bool:
    """Compare against the authoritative creator id, else the legacy one."""
    creator = resolve_creator_actor_id(reservation)
    return bool(creator) and creator == actor_id


def is_related_to_actor(reservation: Reservation, actor_id: str) -> bool:
    """Actor created it (current or legacy field), is a guest, or signed up."""
    if reservation.created_by_actor_id == actor_id:
        return True
    if reservation.created_by is not None and reservation.created_by.id == actor_id:
        return True
    if actor_id in reservation.guest_access_actor_ids:
        return True
    return any(signup.belongs_to(actor_id) for signup in reservation.signups)


def can_access_reservation(
    reservation: Reservation,
    actor_id: str,
    allowed_group_ids: Collection[str],
) -> bool:
    """Whether the actor may see the reservation."""
    if reservation.visibility_scope == VisibilityScope.LINK_ONLY:
        return True
    if reservation.group_id in allowed_group_ids:
        return True
    return is_related_to_actor(reservation, actor_id)


def can_join_reservation(reservation: Reservation, actor_id: str) -> bool:
    """A new, non-cancelled attendance is allowed."""
    if reservation.is_cancelled:
        return False
    current = reservation.find_signup(actor_id)
    return current is None or current.attendance_status == AttendanceStatus.CANCELLED


def can_manage_reservation(
    reservation: Reservation, actor_id: str, group: Group | None
) -> bool:
    """Creator, or admin of the owning group while that group is live."""
    if is_reservation_creator(reservation, actor_id):
        return True
    if not reservation.is_group_scoped or group is None or group.is_deleted:
        return False
    return group.id == reservation.group_id and is_admin(group, actor_id)
