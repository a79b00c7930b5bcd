"""Reservation service layer with business logic."""

import math
from collections.abc import Callable

import structlog

from core.config import settings
from core.exceptions import (
    AuthorizationError,
    GroupNotFoundError,
    LinkOnlyReservationError,
    NotAGroupMemberError,
    NotGroupAdminError,
    NotReservationManagerError,
    ReservationCancelledError,
    ReservationNotFoundError,
    ValidationError,
)
from domain.entities.audit import AuditEvent, AuditEventType
from domain.entities.group import Group, resolve_member_name
from domain.entities.reservation import (
    DEFAULT_COURT_NAME,
    AttendanceStatus,
    CreatorRef,
    Reservation,
    ReservationRules,
    Signup,
    VisibilityScope,
    default_player_name,
    infer_visibility_scope,
    is_real_group_id,
    parse_attendance_status,
    parse_start_datetime,
)
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.audit_service import AuditService
from domain.services.authorization import (
    can_access_reservation,
    can_join_reservation,
    can_manage_reservation,
    is_admin,
    is_member,
    is_reservation_creator,
)
from domain.services.transaction import run_in_transaction

logger = structlog.get_logger()


def _clean(value: str | None) -> str | None:
    trimmed = (value or "").strip()
    return trimmed or None


def _round_minutes(value: float | None) -> int | None:
    """Round half up to whole minutes; None unless the result is positive."""
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
        return None
    minutes = math.floor(value + 0.5)
    return minutes if minutes > 0 else None


def _resolve_duration(value: float | None) -> int:
    return _round_minutes(value) or settings.default_duration_minutes


async def _load_reservation(uow: IUnitOfWork, reservation_id: str) -> Reservation:
    reservation = await uow.reservations.get(reservation_id, for_update=True)
    if not reservation:
        raise ReservationNotFoundError(reservation_id)
    return reservation


async def _load_owning_group(uow: IUnitOfWork, reservation: Reservation) -> Group | None:
    if not reservation.is_group_scoped:
        return None
    return await uow.groups.get(reservation.group_id)


async def _load_member_group(uow: IUnitOfWork, group_id: str | None, actor_id: str) -> Group:
    """Fetch a live group the actor belongs to, for scoping a reservation into it."""
    if not is_real_group_id(group_id):
        raise ValidationError("A group is required for group reservations", field="group_id")
    group = await uow.groups.get(group_id)
    if not group or group.is_deleted:
        raise GroupNotFoundError(group_id)
    if not is_member(group, actor_id):
        raise AuthorizationError("You are not a member of this group")
    return group


async def _allowed_group_ids(uow: IUnitOfWork, actor_id: str) -> set[str]:
    groups = await uow.groups.list_for_actor(actor_id)
    return {g.id for g in groups if not g.is_deleted and is_member(g, actor_id)}


class ReservationService:
    """Service layer for reservations and attendance.

    Each operation reads the reservation, and its owning group when needed,
    inside one transaction before validating and writing.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        audit_service: AuditService | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._audit = audit_service

    async def get(self, reservation_id: str, actor_id: str) -> Reservation:
        """Get a reservation the actor may see."""
        async with self._uow_factory() as uow:
            reservation = await uow.reservations.get(reservation_id)
            if not reservation:
                raise ReservationNotFoundError(reservation_id)
            allowed = await _allowed_group_ids(uow, actor_id)

        if not can_access_reservation(reservation, actor_id, allowed):
            raise AuthorizationError("You cannot view this reservation")
        return reservation

    async def create(
        self,
        actor_id: str,
        start_date_time: str,
        duration_minutes: float | None = None,
        group_id: str | None = None,
        visibility_scope: str | None = None,
        court_name: str | None = None,
        venue_id: str | None = None,
        venue_name: str | None = None,
        venue_address: str | None = None,
        court_id: str | None = None,
        creator_name: str | None = None,
        rules: ReservationRules | None = None,
    ) -> Reservation:
        """Create a reservation owned by the actor.

        Group-scoped reservations require membership in the target group and
        copy its current name.
        """
        if parse_start_datetime(start_date_time) is None:
            raise ValidationError(
                f"Invalid start date time: {start_date_time!r}", field="start_date_time"
            )
        scope = infer_visibility_scope(visibility_scope, group_id)

        async def work(uow: IUnitOfWork) -> Reservation:
            group: Group | None = None
            if scope == VisibilityScope.GROUP:
                group = await _load_member_group(uow, group_id, actor_id)

            name = _clean(creator_name)
            if not name and group is not None:
                name = _clean(group.member_display_names.get(actor_id))

            reservation = Reservation(
                start_date_time=start_date_time.strip(),
                created_by=CreatorRef(id=actor_id, name=name or default_player_name(actor_id)),
                created_by_actor_id=actor_id,
                duration_minutes=_resolve_duration(duration_minutes),
                court_name=_clean(court_name) or DEFAULT_COURT_NAME,
                court_id=_clean(court_id),
                venue_id=_clean(venue_id),
                venue_name=_clean(venue_name),
                venue_address=_clean(venue_address),
                rules=rules or ReservationRules(),
            )
            if group is not None:
                reservation.move_to_group(group.id, group.name)
            else:
                reservation.move_to_link_only()
            return await uow.reservations.create(reservation)

        reservation = await run_in_transaction(self._uow_factory, work)
        logger.info(
            "reservation_created",
            reservation_id=reservation.id,
            group_id=reservation.group_id,
            actor_id=actor_id,
        )

        if reservation.is_group_scoped:
            await self._emit(
                reservation.group_id,
                AuditEventType.RESERVATION_CREATED,
                actor_id,
                reservation.created_by.name,
                reservation,
            )
        return reservation

    async def set_attendance(
        self,
        reservation_id: str,
        actor_id: str,
        status: str,
        display_name: str | None = None,
    ) -> Signup:
        """Record the actor's attendance intent, keeping one signup per actor."""
        attendance = parse_attendance_status(status)

        async def work(uow: IUnitOfWork) -> Signup:
            reservation = await _load_reservation(uow, reservation_id)
            if reservation.is_cancelled and attendance != AttendanceStatus.CANCELLED:
                raise ReservationCancelledError(reservation_id)

            group: Group | None = None
            if reservation.is_group_scoped:
                group = await uow.groups.get(reservation.group_id)
                in_group = group is not None and not group.is_deleted and is_member(group, actor_id)
                if not in_group and actor_id not in reservation.guest_access_actor_ids:
                    raise AuthorizationError("You are not a member of this reservation's group")
            else:
                allowed = await _allowed_group_ids(uow, actor_id)
                if not can_access_reservation(reservation, actor_id, allowed):
                    raise AuthorizationError("You cannot access this reservation")

            existing = reservation.find_signup(actor_id)
            if (
                existing is None
                and attendance != AttendanceStatus.CANCELLED
                and not can_join_reservation(reservation, actor_id)
            ):
                raise AuthorizationError("You cannot join this reservation")

            name = (
                _clean(display_name)
                or (existing.user_name if existing else None)
                or (_clean(group.member_display_names.get(actor_id)) if group else None)
                or default_player_name(actor_id)
            )
            signup = reservation.upsert_signup(actor_id, name, attendance)
            await uow.reservations.update(reservation)
            return signup

        return await run_in_transaction(self._uow_factory, work)

    async def cancel(self, reservation_id: str, actor_id: str) -> Reservation:
        """Cancel a reservation. Creator or owning-group admin only.

        Cancelling an already-cancelled reservation is a successful no-op.
        """
        cancelled = False
        group: Group | None = None

        async def work(uow: IUnitOfWork) -> Reservation:
            nonlocal cancelled, group
            reservation = await _load_reservation(uow, reservation_id)
            group = await _load_owning_group(uow, reservation)
            if not can_manage_reservation(reservation, actor_id, group):
                raise NotReservationManagerError(reservation_id)
            cancelled = reservation.cancel()
            if cancelled:
                await uow.reservations.update(reservation)
            return reservation

        reservation = await run_in_transaction(self._uow_factory, work)

        if cancelled and reservation.is_group_scoped:
            await self._emit(
                reservation.group_id,
                AuditEventType.RESERVATION_CANCELLED,
                actor_id,
                resolve_member_name(group, actor_id),
                reservation,
            )
        return reservation

    async def update_details(
        self,
        reservation_id: str,
        actor_id: str,
        start_date_time: str | None = None,
        duration_minutes: float | None = None,
        court_name: str | None = None,
        court_id: str | None = None,
        venue_id: str | None = None,
        venue_name: str | None = None,
        venue_address: str | None = None,
        group_id: str | None = None,
        visibility_scope: str | None = None,
    ) -> Reservation:
        """Edit venue, court, time or scope. Creator or owning-group admin only.

        Arguments left as None are not changed. Re-scoping into a group
        requires membership in it; moving to link-only clears the group.
        """
        if start_date_time is not None and parse_start_datetime(start_date_time) is None:
            raise ValidationError(
                f"Invalid start date time: {start_date_time!r}", field="start_date_time"
            )
        minutes = _round_minutes(duration_minutes)
        if duration_minutes is not None and minutes is None:
            raise ValidationError("Duration must be a positive number of minutes", field="duration_minutes")
        if visibility_scope is not None and visibility_scope not in (
            VisibilityScope.GROUP.value,
            VisibilityScope.LINK_ONLY.value,
        ):
            raise ValidationError(
                f"Invalid visibility scope: {visibility_scope!r}", field="visibility_scope"
            )

        changed: list[str] = []
        audit_group: Group | None = None

        async def work(uow: IUnitOfWork) -> Reservation:
            nonlocal audit_group
            changed.clear()
            reservation = await _load_reservation(uow, reservation_id)
            current_group = await _load_owning_group(uow, reservation)
            if not can_manage_reservation(reservation, actor_id, current_group):
                raise NotReservationManagerError(reservation_id)
            if reservation.is_cancelled:
                raise ReservationCancelledError(reservation_id)

            fields = {
                "start_date_time": start_date_time.strip() if start_date_time else None,
                "duration_minutes": minutes,
                "court_name": _clean(court_name),
                "court_id": _clean(court_id),
                "venue_id": _clean(venue_id),
                "venue_name": _clean(venue_name),
                "venue_address": _clean(venue_address),
            }
            for name, value in fields.items():
                if value is not None and getattr(reservation, name) != value:
                    setattr(reservation, name, value)
                    changed.append(name)

            audit_group = current_group
            if visibility_scope == VisibilityScope.LINK_ONLY.value:
                if reservation.visibility_scope != VisibilityScope.LINK_ONLY:
                    reservation.move_to_link_only()
                    changed.append("visibility_scope")
            elif group_id is not None or visibility_scope == VisibilityScope.GROUP.value:
                target_id = group_id or reservation.group_id
                if target_id != reservation.group_id or not reservation.is_group_scoped:
                    target = await _load_member_group(uow, target_id, actor_id)
                    reservation.move_to_group(target.id, target.name)
                    changed.append("group_id")
                    audit_group = target

            if changed:
                reservation.touch()
                await uow.reservations.update(reservation)
            return reservation

        reservation = await run_in_transaction(self._uow_factory, work)

        if changed and audit_group is not None:
            await self._emit(
                audit_group.id,
                AuditEventType.RESERVATION_UPDATED,
                actor_id,
                resolve_member_name(audit_group, actor_id),
                reservation,
                extra={"changedFields": ",".join(changed)},
            )
        return reservation

    async def update_rules(
        self, reservation_id: str, rules: ReservationRules, actor_id: str
    ) -> Reservation:
        """Replace the attendance rules. Creator only."""
        if rules.max_accepted <= 0:
            raise ValidationError("Max accepted players must be positive", field="max_accepted")

        async def work(uow: IUnitOfWork) -> Reservation:
            reservation = await _load_reservation(uow, reservation_id)
            if not is_reservation_creator(reservation, actor_id):
                raise AuthorizationError("Only the creator can edit the rules")
            reservation.rules = rules
            reservation.touch()
            return await uow.reservations.update(reservation)

        return await run_in_transaction(self._uow_factory, work)

    async def reassign_owner(
        self,
        reservation_id: str,
        target_actor_id: str,
        target_name: str,
        actor_id: str,
    ) -> Reservation:
        """Hand a group reservation over to another member. Group admin only."""
        target_name = (target_name or "").strip()
        if not target_actor_id or not target_name:
            raise ValidationError("A target member and name are required", field="target_actor_id")

        group: Group | None = None

        async def work(uow: IUnitOfWork) -> Reservation:
            nonlocal group
            reservation = await _load_reservation(uow, reservation_id)
            if not reservation.is_group_scoped:
                raise LinkOnlyReservationError(reservation_id)
            group = await uow.groups.get(reservation.group_id)
            if not group or group.is_deleted:
                raise GroupNotFoundError(reservation.group_id)
            if not is_admin(group, actor_id):
                raise NotGroupAdminError(group.id)
            if target_actor_id not in group.member_actor_ids:
                raise NotAGroupMemberError(target_actor_id)

            reservation.created_by_actor_id = target_actor_id
            reservation.created_by = CreatorRef(id=target_actor_id, name=target_name)
            reservation.touch()
            return await uow.reservations.update(reservation)

        reservation = await run_in_transaction(self._uow_factory, work)

        await self._emit(
            reservation.group_id,
            AuditEventType.RESERVATION_OWNER_REASSIGNED,
            actor_id,
            resolve_member_name(group, actor_id, "Admin"),
            reservation,
            target_id=target_actor_id,
            target_name=resolve_member_name(group, target_actor_id, target_name),
        )
        return reservation

    # --- Internal helpers ---

    async def _emit(
        self,
        group_id: str,
        event_type: AuditEventType,
        actor_id: str,
        actor_name: str,
        reservation: Reservation,
        target_id: str | None = None,
        target_name: str | None = None,
        extra: dict[str, str] | None = None,
    ) -> None:
        if not self._audit:
            return
        await self._audit.emit(
            AuditEvent(
                group_id=group_id,
                type=event_type,
                actor_id=actor_id,
                actor_name=actor_name,
                target_id=target_id or reservation.id,
                target_name=target_name or reservation.court_name,
                metadata={"reservationId": reservation.id, **(extra or {})},
            )
        )
