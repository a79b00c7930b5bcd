"""Reservation domain entities."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from uuid import uuid4

from core.exceptions import ReservationCancelledError, ValidationError

# Group id stored on reservations that belong to no group.
DEFAULT_GROUP_ID = "default-group"

DEFAULT_COURT_NAME = "Cancha a definir"

# "Uncapped" marker for max accepted players.
UNLIMITED_PLAYERS = 9999


class VisibilityScope(StrEnum):
    """Who can see a reservation."""

    GROUP = "group"
    LINK_ONLY = "link_only"


class ReservationStatus(StrEnum):
    """Reservation lifecycle status. Only ACTIVE -> CANCELLED is allowed."""

    ACTIVE = "active"
    CANCELLED = "cancelled"


class AttendanceStatus(StrEnum):
    """Attendance intent recorded on a signup."""

    CONFIRMED = "confirmed"
    MAYBE = "maybe"
    CANCELLED = "cancelled"


def parse_attendance_status(value: str | None) -> AttendanceStatus:
    """Parse an attendance literal, raising ValidationError on anything else."""
    try:
        return AttendanceStatus((value or "").strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid attendance status: {value!r}", field="attendance_status"
        ) from None


def parse_start_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-local or ISO-instant string into a naive UTC datetime.

    Local values without an offset are read as UTC. Returns None when the
    value does not describe a real instant.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def is_real_group_id(group_id: str | None) -> bool:
    return bool(group_id) and group_id != DEFAULT_GROUP_ID


def infer_visibility_scope(
    explicit: str | None, group_id: str | None
) -> VisibilityScope:
    """Use the explicit scope when valid, else infer it from the group id."""
    if explicit in (VisibilityScope.GROUP.value, VisibilityScope.LINK_ONLY.value):
        return VisibilityScope(explicit)
    return VisibilityScope.GROUP if is_real_group_id(group_id) else VisibilityScope.LINK_ONLY


def _new_id() -> str:
    return str(uuid4())


@dataclass
class CreatorRef:
    """Display snapshot of the reservation creator (legacy identity source)."""

    id: str
    name: str


@dataclass
class ReservationRules:
    """Attendance rules for a reservation."""

    max_accepted: int = UNLIMITED_PLAYERS
    priority_actor_ids: list[str] = field(default_factory=list)
    allow_waitlist: bool = True
    signup_deadline: str | None = None


@dataclass
class Signup:
    """One actor's attendance intent, embedded in its reservation."""

    reservation_id: str
    user_id: str
    user_name: str
    actor_id: str | None = None
    attendance_status: AttendanceStatus = AttendanceStatus.CONFIRMED
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def belongs_to(self, actor_id: str) -> bool:
        return self.actor_id == actor_id or self.user_id == actor_id


@dataclass
class SignupResult:
    """Active signups split into accepted players and the waitlist."""

    accepted: list[Signup]
    waitlist: list[Signup]


@dataclass
class Reservation:
    """Domain entity for a court reservation."""

    start_date_time: str
    created_by: CreatorRef
    id: str = field(default_factory=_new_id)
    group_id: str = DEFAULT_GROUP_ID
    group_name: str | None = None
    visibility_scope: VisibilityScope = VisibilityScope.LINK_ONLY
    venue_id: str | None = None
    venue_name: str | None = None
    venue_address: str | None = None
    court_id: str | None = None
    court_name: str = DEFAULT_COURT_NAME
    duration_minutes: int = 90
    created_by_actor_id: str | None = None
    guest_access_actor_ids: list[str] = field(default_factory=list)
    rules: ReservationRules = field(default_factory=ReservationRules)
    signups: list[Signup] = field(default_factory=list)
    status: ReservationStatus = ReservationStatus.ACTIVE
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    # False when the stored row had no valid scope and it was inferred on read.
    visibility_scope_stored: bool = field(default=True, compare=False, repr=False)

    @property
    def is_group_scoped(self) -> bool:
        return self.visibility_scope == VisibilityScope.GROUP and is_real_group_id(self.group_id)

    @property
    def is_cancelled(self) -> bool:
        return self.status == ReservationStatus.CANCELLED

    @property
    def starts_at(self) -> datetime | None:
        return parse_start_datetime(self.start_date_time)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def cancel(self) -> bool:
        """Cancel the reservation. Returns False when it was already cancelled."""
        if self.is_cancelled:
            return False
        self.status = ReservationStatus.CANCELLED
        self.touch()
        return True

    def find_signup(self, actor_id: str) -> Signup | None:
        """Find the actor's signup by actor id, then by the legacy user id."""
        for signup in self.signups:
            if signup.actor_id == actor_id:
                return signup
        for signup in self.signups:
            if signup.user_id == actor_id:
                return signup
        return None

    def upsert_signup(
        self, actor_id: str, user_name: str, status: AttendanceStatus
    ) -> Signup:
        """Create or update the actor's single signup entry."""
        if self.is_cancelled and status != AttendanceStatus.CANCELLED:
            raise ReservationCancelledError(self.id)

        now = datetime.utcnow()
        existing = self.find_signup(actor_id)
        if existing is not None:
            existing.actor_id = actor_id
            existing.attendance_status = status
            existing.updated_at = now
            if user_name:
                existing.user_name = user_name
            self.touch()
            return existing

        signup = Signup(
            reservation_id=self.id,
            user_id=actor_id,
            actor_id=actor_id,
            user_name=user_name,
            attendance_status=status,
            created_at=now,
            updated_at=now,
        )
        self.signups = [*self.signups, signup]
        self.touch()
        return signup

    def grant_guest_access(self, actor_id: str) -> bool:
        """Add a guest (idempotent). Returns True when the guest was new."""
        if actor_id in self.guest_access_actor_ids:
            return False
        self.guest_access_actor_ids = [*self.guest_access_actor_ids, actor_id]
        self.touch()
        return True

    def move_to_group(self, group_id: str, group_name: str | None) -> None:
        self.group_id = group_id
        self.group_name = group_name
        self.visibility_scope = VisibilityScope.GROUP
        self.touch()

    def move_to_link_only(self) -> None:
        self.group_id = DEFAULT_GROUP_ID
        self.group_name = None
        self.visibility_scope = VisibilityScope.LINK_ONLY
        self.touch()

    def signup_result(self) -> SignupResult:
        """Split non-cancelled signups into accepted players and waitlist.

        Priority actors go first, each bucket ordered by signup time.
        """
        active = sorted(
            (s for s in self.signups if s.attendance_status != AttendanceStatus.CANCELLED),
            key=lambda s: s.created_at,
        )
        priority = set(self.rules.priority_actor_ids)
        ordered = [s for s in active if s.user_id in priority or s.actor_id in priority]
        ordered += [s for s in active if s not in ordered]
        cap = max(self.rules.max_accepted, 0)
        return SignupResult(accepted=ordered[:cap], waitlist=ordered[cap:])


def resolve_creator_actor_id(reservation: Reservation) -> str | None:
    """The creator's actor id, falling back to the legacy embedded creator id."""
    if reservation.created_by_actor_id:
        return reservation.created_by_actor_id
    return reservation.created_by.id if reservation.created_by else None


def default_player_name(actor_id: str) -> str:
    """Placeholder name shown for actors that never set one."""
    return f"Jugador #{actor_id[-4:].upper()}"
