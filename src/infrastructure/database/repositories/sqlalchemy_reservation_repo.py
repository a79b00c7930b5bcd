"""SQLAlchemy implementation of Reservation repository."""

from collections.abc import Collection
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import or_, select, type_coerce, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.reservation import (
    DEFAULT_COURT_NAME,
    DEFAULT_GROUP_ID,
    UNLIMITED_PLAYERS,
    AttendanceStatus,
    CreatorRef,
    Reservation,
    ReservationRules,
    ReservationStatus,
    Signup,
    VisibilityScope,
    infer_visibility_scope,
)
from infrastructure.database.models import ReservationModel

logger = structlog.get_logger()


def _parse_datetime(value: Any, default: datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return default
        return parsed.replace(tzinfo=None)
    return default


def _signup_status(raw: dict[str, Any]) -> AttendanceStatus:
    status = raw.get("attendance_status")
    try:
        return AttendanceStatus(status)
    except ValueError:
        # Older signups only carry an "active" flag.
        return AttendanceStatus.CANCELLED if raw.get("active") is False else AttendanceStatus.CONFIRMED


def signup_from_dict(raw: dict[str, Any], reservation_id: str, fallback: datetime) -> Signup:
    """Read one embedded signup, defaulting legacy and missing fields."""
    created_at = _parse_datetime(raw.get("created_at"), fallback)
    user_id = str(raw.get("user_id") or raw.get("actor_id") or "")
    return Signup(
        id=str(raw.get("id") or f"{reservation_id}:{user_id}"),
        reservation_id=reservation_id,
        user_id=user_id,
        user_name=str(raw.get("user_name") or ""),
        actor_id=raw.get("actor_id") or None,
        attendance_status=_signup_status(raw),
        created_at=created_at,
        updated_at=_parse_datetime(raw.get("updated_at"), created_at),
    )


def signup_to_dict(signup: Signup) -> dict[str, Any]:
    return {
        "id": signup.id,
        "user_id": signup.user_id,
        "user_name": signup.user_name,
        "actor_id": signup.actor_id,
        "attendance_status": signup.attendance_status.value,
        "created_at": signup.created_at.isoformat(),
        "updated_at": signup.updated_at.isoformat(),
    }


def rules_from_dict(raw: Any) -> ReservationRules:
    if not isinstance(raw, dict):
        return ReservationRules()
    max_accepted = raw.get("max_accepted")
    priority = raw.get("priority_actor_ids")
    return ReservationRules(
        max_accepted=max_accepted if isinstance(max_accepted, int) and max_accepted > 0 else UNLIMITED_PLAYERS,
        priority_actor_ids=[p for p in priority if isinstance(p, str)] if isinstance(priority, list) else [],
        allow_waitlist=raw.get("allow_waitlist") is not False,
        signup_deadline=raw.get("signup_deadline") or None,
    )


def rules_to_dict(rules: ReservationRules) -> dict[str, Any]:
    return {
        "max_accepted": rules.max_accepted,
        "priority_actor_ids": list(rules.priority_actor_ids),
        "allow_waitlist": rules.allow_waitlist,
        "signup_deadline": rules.signup_deadline,
    }


class SQLAlchemyReservationRepository:
    """SQLAlchemy implementation of IReservationRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_model(self, id: str, for_update: bool = False) -> ReservationModel | None:
        stmt = select(ReservationModel).where(ReservationModel.id == id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _list(self, stmt) -> list[Reservation]:  # type: ignore[no-untyped-def]
        result = await self._session.execute(stmt)
        reservations = []
        for model in result.scalars():
            try:
                reservations.append(self._to_entity(model))
            except (TypeError, ValueError):
                logger.warning("malformed_reservation_skipped", reservation_id=model.id, exc_info=True)
        return reservations

    async def get(self, id: str, for_update: bool = False) -> Reservation | None:
        """Get a reservation by ID."""
        model = await self._get_model(id, for_update)
        return self._to_entity(model) if model else None

    async def create(self, reservation: Reservation) -> Reservation:
        """Create a new reservation."""
        model = self._to_model(reservation)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def update(self, reservation: Reservation) -> Reservation:
        """Write the whole reservation document back."""
        model = await self._get_model(reservation.id)

        if not model:
            raise ValueError(f"Reservation {reservation.id} not found")

        self._apply(model, reservation)
        await self._session.flush()
        return self._to_entity(model)

    async def list_created_by(self, actor_id: str) -> list[Reservation]:
        """Get reservations created by the actor, by current or legacy creator field."""
        stmt = select(ReservationModel).where(
            or_(
                ReservationModel.created_by_actor_id == actor_id,
                ReservationModel.created_by_id == actor_id,
            )
        )
        return await self._list(stmt)

    async def list_for_groups(self, group_ids: Collection[str]) -> list[Reservation]:
        """Get reservations belonging to any of the given groups."""
        if not group_ids:
            return []
        stmt = select(ReservationModel).where(ReservationModel.group_id.in_(list(group_ids)))
        return await self._list(stmt)

    async def list_with_participant(self, actor_id: str) -> list[Reservation]:
        """Get reservations where the actor is a guest or signed up."""
        if self._session.bind.dialect.name == "postgresql":
            signups = type_coerce(ReservationModel.signups, JSONB)
            stmt = select(ReservationModel).where(
                or_(
                    type_coerce(ReservationModel.guest_access_actor_ids, JSONB).contains([actor_id]),
                    signups.contains([{"actor_id": actor_id}]),
                    signups.contains([{"user_id": actor_id}]),
                )
            )
            return await self._list(stmt.order_by(ReservationModel.created_at))

        # No JSON containment operator outside PostgreSQL; filter in memory.
        reservations = await self._list(select(ReservationModel).order_by(ReservationModel.created_at))
        return [
            r
            for r in reservations
            if actor_id in r.guest_access_actor_ids
            or any(s.belongs_to(actor_id) for s in r.signups)
        ]

    async def list_ids_for_group(self, group_id: str) -> list[str]:
        """Get the IDs of every reservation referencing a group."""
        stmt = select(ReservationModel.id).where(ReservationModel.group_id == group_id)
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def list_ids(self) -> list[str]:
        """Get the IDs of every reservation, oldest first."""
        stmt = select(ReservationModel.id).order_by(ReservationModel.created_at)
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def set_group_name(self, ids: Collection[str], group_name: str) -> int:
        """Overwrite the cached group name. Returns count of updated rows."""
        if not ids:
            return 0
        stmt = (
            update(ReservationModel)
            .where(ReservationModel.id.in_(list(ids)))
            .values(
                group_name=group_name,
                updated_at=datetime.utcnow(),
                version=ReservationModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    def _apply(self, model: ReservationModel, entity: Reservation) -> None:
        model.group_id = entity.group_id or DEFAULT_GROUP_ID
        model.group_name = entity.group_name
        model.visibility_scope = entity.visibility_scope.value
        model.venue_id = entity.venue_id
        model.venue_name = entity.venue_name
        model.venue_address = entity.venue_address
        model.court_id = entity.court_id
        model.court_name = entity.court_name
        model.start_date_time = entity.start_date_time
        model.duration_minutes = entity.duration_minutes
        model.created_by = {"id": entity.created_by.id, "name": entity.created_by.name}
        model.created_by_id = entity.created_by.id
        model.created_by_actor_id = entity.created_by_actor_id
        model.guest_access_actor_ids = list(entity.guest_access_actor_ids)
        model.rules = rules_to_dict(entity.rules)
        model.signups = [signup_to_dict(s) for s in entity.signups]
        model.status = entity.status.value
        model.updated_at = entity.updated_at

    def _to_entity(self, model: ReservationModel) -> Reservation:
        """Convert ORM model to domain entity, defaulting malformed fields."""
        created_by = model.created_by if isinstance(model.created_by, dict) else {}
        creator_id = str(created_by.get("id") or model.created_by_id or model.created_by_actor_id or "")
        group_id = model.group_id or DEFAULT_GROUP_ID
        duration = model.duration_minutes
        guests = model.guest_access_actor_ids if isinstance(model.guest_access_actor_ids, list) else []
        raw_signups = model.signups if isinstance(model.signups, list) else []
        created_at = model.created_at or datetime.utcnow()

        return Reservation(
            id=model.id,
            group_id=group_id,
            group_name=model.group_name,
            visibility_scope=infer_visibility_scope(model.visibility_scope, group_id),
            venue_id=model.venue_id,
            venue_name=model.venue_name,
            venue_address=model.venue_address,
            court_id=model.court_id,
            court_name=model.court_name or DEFAULT_COURT_NAME,
            start_date_time=model.start_date_time or "",
            duration_minutes=duration if duration and duration > 0 else 90,
            created_by=CreatorRef(id=creator_id, name=str(created_by.get("name") or "")),
            created_by_actor_id=model.created_by_actor_id,
            guest_access_actor_ids=[g for g in guests if isinstance(g, str)],
            rules=rules_from_dict(model.rules),
            signups=[
                signup_from_dict(raw, model.id, created_at)
                for raw in raw_signups
                if isinstance(raw, dict)
            ],
            status=ReservationStatus.CANCELLED
            if model.status == ReservationStatus.CANCELLED.value
            else ReservationStatus.ACTIVE,
            created_at=created_at,
            updated_at=model.updated_at or created_at,
            visibility_scope_stored=model.visibility_scope
            in (VisibilityScope.GROUP.value, VisibilityScope.LINK_ONLY.value),
        )

    def _to_model(self, entity: Reservation) -> ReservationModel:
        """Convert domain entity to ORM model."""
        model = ReservationModel(id=entity.id, created_at=entity.created_at)
        self._apply(model, entity)
        return model
