"""Group domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from core.exceptions import (
    LastAdminError,
    NotAGroupMemberError,
    OwnerImmutableError,
    ValidationError,
)

DEFAULT_GROUP_NAME = "Mi grupo"
DEFAULT_MEMBER_NAME = "Jugador"


def _new_id() -> str:
    return str(uuid4())


def _unique(values: list[str]) -> list[str]:
    """Deduplicate while keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v))


def normalize_group_name(name: str | None) -> str:
    """Trim a group name, rejecting empty values."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Group name cannot be empty", field="name")
    return trimmed


@dataclass
class Group:
    """A social group that scopes reservations.

    The owner is always an admin and every admin is always a member. All
    mutators below preserve that chain and keep the admin list non-empty.
    """

    name: str
    owner_actor_id: str
    id: str = field(default_factory=_new_id)
    admin_actor_ids: list[str] = field(default_factory=list)
    member_actor_ids: list[str] = field(default_factory=list)
    member_display_names: dict[str, str] = field(default_factory=dict)
    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by_actor_id: str | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        self._restore_invariants()

    @classmethod
    def create(cls, name: str, owner_actor_id: str, display_name: str | None = None) -> "Group":
        """Build a new group with the actor as owner, sole admin and sole member."""
        group = cls(name=normalize_group_name(name), owner_actor_id=owner_actor_id)
        group.member_display_names[owner_actor_id] = (display_name or "").strip() or DEFAULT_MEMBER_NAME
        return group

    def _restore_invariants(self) -> None:
        # Legacy rows may miss the owner in either list.
        self.admin_actor_ids = _unique([*self.admin_actor_ids, self.owner_actor_id])
        self.member_actor_ids = _unique([*self.member_actor_ids, *self.admin_actor_ids])

    def _touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def display_name_for(self, actor_id: str, fallback: str = DEFAULT_MEMBER_NAME) -> str:
        """Resolve a member's display name, falling back when missing or blank."""
        name = (self.member_display_names.get(actor_id) or "").strip()
        return name or fallback

    def rename(self, name: str) -> str:
        """Rename the group. Returns the previous name."""
        previous = self.name
        self.name = normalize_group_name(name)
        self._touch()
        return previous

    def add_member(self, actor_id: str, display_name: str | None = None) -> bool:
        """Add a member (idempotent). Returns True when the actor was not a member yet."""
        added = actor_id not in self.member_actor_ids
        if added:
            self.member_actor_ids = [*self.member_actor_ids, actor_id]
        name = (display_name or "").strip()
        if name:
            self.member_display_names = {**self.member_display_names, actor_id: name}
        elif added:
            self.member_display_names = {
                **self.member_display_names,
                actor_id: DEFAULT_MEMBER_NAME,
            }
        self._touch()
        return added

    def set_admin(self, target_actor_id: str, make_admin: bool) -> bool:
        """Grant or revoke admin rights. Returns True when the admin list changed."""
        if target_actor_id not in self.member_actor_ids:
            raise NotAGroupMemberError(target_actor_id)
        if target_actor_id == self.owner_actor_id:
            raise OwnerImmutableError()

        if make_admin:
            next_admins = _unique([*self.admin_actor_ids, target_actor_id, self.owner_actor_id])
        else:
            next_admins = _unique(
                [a for a in self.admin_actor_ids if a != target_actor_id] + [self.owner_actor_id]
            )
        if not next_admins:
            raise LastAdminError()

        changed = next_admins != self.admin_actor_ids
        self.admin_actor_ids = next_admins
        self._touch()
        return changed

    def remove_member(self, target_actor_id: str) -> None:
        """Evict a member, dropping admin rights and display name with it."""
        if target_actor_id == self.owner_actor_id:
            raise OwnerImmutableError()
        if target_actor_id not in self.member_actor_ids:
            raise NotAGroupMemberError(target_actor_id)

        next_admins = _unique(
            [a for a in self.admin_actor_ids if a != target_actor_id] + [self.owner_actor_id]
        )
        if not next_admins:
            raise LastAdminError()

        self.member_actor_ids = [m for m in self.member_actor_ids if m != target_actor_id]
        self.admin_actor_ids = next_admins
        self.member_display_names = {
            k: v for k, v in self.member_display_names.items() if k != target_actor_id
        }
        self._touch()

    def soft_delete(self, actor_id: str) -> None:
        """Mark the group as deleted. Groups are never hard-deleted."""
        now = datetime.utcnow()
        self.is_deleted = True
        self.deleted_at = now
        self.deleted_by_actor_id = actor_id
        self.updated_at = now


def resolve_member_name(
    group: Group | None, actor_id: str, fallback: str = DEFAULT_MEMBER_NAME
) -> str:
    """Display name of an actor inside a group, or the fallback."""
    if group is None:
        return fallback
    return group.display_name_for(actor_id, fallback)
