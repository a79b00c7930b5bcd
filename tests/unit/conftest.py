"""Shared fixtures for unit tests."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from domain.entities.group import Group
from domain.entities.reservation import CreatorRef, Reservation, VisibilityScope


def _echo(entity: Any, *args: Any) -> Any:
    return entity


class FakeUnitOfWork:
    """Fake Unit of Work with the four repository mocks for unit testing.

    Writes echo their argument back and lookups find nothing until a test
    sets a return value.
    """

    def __init__(self) -> None:
        self.groups = AsyncMock()
        self.reservations = AsyncMock()
        self.invitations = AsyncMock()
        self.audit_events = AsyncMock()
        self.committed = False
        self.rolled_back = False

        for repo in (self.groups, self.reservations, self.invitations, self.audit_events):
            repo.create.side_effect = _echo
        self.groups.update.side_effect = _echo
        self.reservations.update.side_effect = _echo

        self.groups.get.return_value = None
        self.groups.list_for_actor.return_value = []
        self.reservations.get.return_value = None
        self.reservations.list_created_by.return_value = []
        self.reservations.list_for_groups.return_value = []
        self.reservations.list_with_participant.return_value = []
        self.reservations.list_ids_for_group.return_value = []
        self.reservations.list_ids.return_value = []
        self.invitations.get_by_token.return_value = None
        self.invitations.list_for_group.return_value = []
        self.audit_events.get_for_group.return_value = []

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def audit() -> AsyncMock:
    """Audit sink whose emitted events can be inspected."""
    return AsyncMock()


@pytest.fixture
def owner_id() -> str:
    return "owner-0001"


@pytest.fixture
def admin_id() -> str:
    return "admin-0002"


@pytest.fixture
def member_id() -> str:
    return "member-0003"


@pytest.fixture
def outsider_id() -> str:
    return "outsider-0004"


@pytest.fixture
def group(owner_id: str, admin_id: str, member_id: str) -> Group:
    """A group with an owner, one extra admin and one plain member."""
    g = Group.create("Padel Martes", owner_id, "Lucia")
    g.add_member(admin_id, "Ana")
    g.set_admin(admin_id, True)
    g.add_member(member_id, "Mateo")
    return g


@pytest.fixture
def group_reservation(group: Group, member_id: str) -> Reservation:
    """A group-scoped reservation created by the plain member."""
    return Reservation(
        start_date_time="2099-03-10T19:00:00",
        created_by=CreatorRef(id=member_id, name="Mateo"),
        created_by_actor_id=member_id,
        group_id=group.id,
        group_name=group.name,
        visibility_scope=VisibilityScope.GROUP,
        court_name="Cancha 1",
    )


@pytest.fixture
def link_reservation(outsider_id: str) -> Reservation:
    """A link-only reservation owned by an actor outside the group."""
    return Reservation(
        start_date_time="2099-03-11T20:00:00",
        created_by=CreatorRef(id=outsider_id, name="Sofia"),
        created_by_actor_id=outsider_id,
        court_name="Cancha 2",
    )
