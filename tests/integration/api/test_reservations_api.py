"""Integration tests for Reservations API."""

from collections.abc import Callable

import pytest
from httpx import AsyncClient

from infrastructure.auth.provider import Actor

Headers = Callable[[Actor], dict[str, str]]

FUTURE = "2099-03-10T19:00:00"


@pytest.fixture
async def group_id(client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor) -> str:
    """A group owned by ``owner`` with ``member`` already joined."""
    headers = auth_headers(owner)
    created = await client.post("/api/v1/groups", json={"name": "Padel Martes"}, headers=headers)
    gid = created.json()["data"]["id"]
    invite = await client.post(f"/api/v1/groups/{gid}/invitations", json={}, headers=headers)
    token = invite.json()["data"]["token"]
    await client.post(f"/api/v1/invitations/{token}/accept", json={}, headers=auth_headers(member))
    return gid


async def _create(client: AsyncClient, headers: dict[str, str], **body) -> dict:
    payload = {"start_date_time": FUTURE, **body}
    response = await client.post("/api/v1/reservations", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreateReservation:
    @pytest.mark.asyncio
    async def test_group_reservation_copies_group_name(
        self, client: AsyncClient, auth_headers: Headers, member: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(member), group_id=group_id, court_name="Cancha 1")

        assert data["visibility_scope"] == "group"
        assert data["group_id"] == group_id
        assert data["group_name"] == "Padel Martes"
        assert data["created_by_actor_id"] == member.id
        assert data["created_by"] == {"id": member.id, "name": "Mateo"}
        assert data["court_name"] == "Cancha 1"
        assert data["status"] == "active"
        assert data["signups"] == []

    @pytest.mark.asyncio
    async def test_without_group_is_link_only(
        self, client: AsyncClient, auth_headers: Headers, outsider: Actor
    ):
        data = await _create(client, auth_headers(outsider))

        assert data["visibility_scope"] == "link_only"
        assert data["group_id"] == "default-group"
        assert data["group_name"] is None
        assert data["court_name"] == "Cancha a definir"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "duration,expected",
        [(90.5, 91), (45.4, 45), ("long", 90), (-30, 90), (None, 90)],
    )
    async def test_duration_is_rounded_or_defaulted(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, duration, expected: int
    ):
        data = await _create(client, auth_headers(owner), duration_minutes=duration)

        assert data["duration_minutes"] == expected

    @pytest.mark.asyncio
    async def test_non_member_cannot_create_in_group(
        self, client: AsyncClient, auth_headers: Headers, outsider: Actor, group_id: str
    ):
        response = await client.post(
            "/api/v1/reservations",
            json={"start_date_time": FUTURE, "group_id": group_id},
            headers=auth_headers(outsider),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_group_scope_requires_a_group(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor
    ):
        response = await client.post(
            "/api/v1/reservations",
            json={"start_date_time": FUTURE, "visibility_scope": "group"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_start_time(self, client: AsyncClient, auth_headers: Headers, owner: Actor):
        response = await client.post(
            "/api/v1/reservations",
            json={"start_date_time": "next tuesday"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "start_date_time"


class TestVisibility:
    @pytest.mark.asyncio
    async def test_outsider_cannot_see_group_reservation(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, outsider: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(owner), group_id=group_id)

        response = await client.get(
            f"/api/v1/reservations/{data['id']}", headers=auth_headers(outsider)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_link_only_reservation_opens_with_the_link(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, outsider: Actor
    ):
        data = await _create(client, auth_headers(owner))

        response = await client.get(
            f"/api/v1/reservations/{data['id']}", headers=auth_headers(outsider)
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_reservation(self, client: AsyncClient, auth_headers: Headers, owner: Actor):
        response = await client.get("/api/v1/reservations/nope", headers=auth_headers(owner))

        assert response.status_code == 404
        assert response.json()["error_code"] == "RESERVATION_NOT_FOUND"


class TestAttendance:
    @pytest.mark.asyncio
    async def test_one_signup_per_actor(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(owner), group_id=group_id)
        url = f"/api/v1/reservations/{data['id']}/attendance"

        first = await client.put(url, json={"status": "confirmed"}, headers=auth_headers(member))
        second = await client.put(url, json={"status": "maybe"}, headers=auth_headers(member))

        assert first.status_code == 200
        assert first.json()["data"]["user_name"] == "Mateo"
        assert second.json()["data"]["attendance_status"] == "maybe"
        assert second.json()["data"]["id"] == first.json()["data"]["id"]

        reservation = await client.get(f"/api/v1/reservations/{data['id']}", headers=auth_headers(owner))
        assert len(reservation.json()["data"]["signups"]) == 1

    @pytest.mark.asyncio
    async def test_invalid_status(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(owner), group_id=group_id)

        response = await client.put(
            f"/api/v1/reservations/{data['id']}/attendance",
            json={"status": "definitely"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_outsider_cannot_join_group_reservation(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, outsider: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(owner), group_id=group_id)

        response = await client.put(
            f"/api/v1/reservations/{data['id']}/attendance",
            json={"status": "confirmed"},
            headers=auth_headers(outsider),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cancelled_reservation_rejects_signups(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(owner), group_id=group_id)
        await client.post(f"/api/v1/reservations/{data['id']}/cancel", headers=auth_headers(owner))

        response = await client.put(
            f"/api/v1/reservations/{data['id']}/attendance",
            json={"status": "confirmed"},
            headers=auth_headers(member),
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "RESERVATION_CANCELLED"

    @pytest.mark.asyncio
    async def test_waitlist_respects_capacity(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor, group_id: str
    ):
        data = await _create(
            client, auth_headers(owner), group_id=group_id, rules={"max_accepted": 1}
        )
        url = f"/api/v1/reservations/{data['id']}/attendance"
        await client.put(url, json={"status": "confirmed"}, headers=auth_headers(owner))
        await client.put(url, json={"status": "confirmed"}, headers=auth_headers(member))

        response = await client.get(
            f"/api/v1/reservations/{data['id']}/signups", headers=auth_headers(owner)
        )

        body = response.json()
        assert [s["actor_id"] for s in body["accepted"]] == [owner.id]
        assert [s["actor_id"] for s in body["waitlist"]] == [member.id]


class TestManageReservation:
    @pytest.mark.asyncio
    async def test_group_admin_can_cancel_members_reservation(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(member), group_id=group_id)
        url = f"/api/v1/reservations/{data['id']}/cancel"

        first = await client.post(url, headers=auth_headers(owner))
        again = await client.post(url, headers=auth_headers(owner))

        assert first.json()["data"]["status"] == "cancelled"
        assert again.status_code == 200

    @pytest.mark.asyncio
    async def test_plain_member_cannot_cancel_others(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(owner), group_id=group_id)

        response = await client.post(
            f"/api/v1/reservations/{data['id']}/cancel", headers=auth_headers(member)
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "NOT_RESERVATION_MANAGER"

    @pytest.mark.asyncio
    async def test_update_details_and_move_to_link_only(
        self, client: AsyncClient, auth_headers: Headers, member: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(member), group_id=group_id)

        response = await client.patch(
            f"/api/v1/reservations/{data['id']}",
            json={"court_name": "Cancha 3", "visibility_scope": "link_only"},
            headers=auth_headers(member),
        )

        updated = response.json()["data"]
        assert updated["court_name"] == "Cancha 3"
        assert updated["visibility_scope"] == "link_only"
        assert updated["group_id"] == "default-group"

    @pytest.mark.asyncio
    async def test_rules_are_creator_only(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(member), group_id=group_id)
        url = f"/api/v1/reservations/{data['id']}/rules"
        rules = {"max_accepted": 4, "priority_actor_ids": [owner.id], "allow_waitlist": False}

        denied = await client.put(url, json=rules, headers=auth_headers(owner))
        allowed = await client.put(url, json=rules, headers=auth_headers(member))

        assert denied.status_code == 403
        assert allowed.json()["data"]["rules"]["max_accepted"] == 4
        assert allowed.json()["data"]["rules"]["priority_actor_ids"] == [owner.id]

    @pytest.mark.asyncio
    async def test_admin_reassigns_owner(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor, group_id: str
    ):
        data = await _create(client, auth_headers(owner), group_id=group_id)

        response = await client.post(
            f"/api/v1/reservations/{data['id']}/owner",
            json={"target_actor_id": member.id, "target_name": "Mateo"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json()["data"]["created_by_actor_id"] == member.id
        assert response.json()["data"]["created_by"] == {"id": member.id, "name": "Mateo"}

    @pytest.mark.asyncio
    async def test_reassign_link_only_is_rejected(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor
    ):
        data = await _create(client, auth_headers(owner))

        response = await client.post(
            f"/api/v1/reservations/{data['id']}/owner",
            json={"target_actor_id": member.id, "target_name": "Mateo"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "LINK_ONLY_RESERVATION"


class TestListReservations:
    @pytest.mark.asyncio
    async def test_active_listing_orders_by_start(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, member: Actor, group_id: str
    ):
        later = await _create(client, auth_headers(owner), group_id=group_id, start_date_time="2099-06-01T10:00:00")
        sooner = await _create(client, auth_headers(owner), group_id=group_id, start_date_time="2099-01-01T10:00:00")
        cancelled = await _create(client, auth_headers(owner), group_id=group_id)
        await client.post(f"/api/v1/reservations/{cancelled['id']}/cancel", headers=auth_headers(owner))

        response = await client.get("/api/v1/reservations", headers=auth_headers(member))

        body = response.json()
        assert [r["id"] for r in body["data"]] == [sooner["id"], later["id"]]
        assert body["meta"] == {"total": 2, "mode": "active"}

    @pytest.mark.asyncio
    async def test_history_lists_past_newest_first(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, group_id: str
    ):
        old = await _create(client, auth_headers(owner), group_id=group_id, start_date_time="2020-01-01T10:00:00")
        newer = await _create(client, auth_headers(owner), group_id=group_id, start_date_time="2021-01-01T10:00:00")
        await _create(client, auth_headers(owner), group_id=group_id)

        response = await client.get(
            "/api/v1/reservations", params={"mode": "history"}, headers=auth_headers(owner)
        )

        assert [r["id"] for r in response.json()["data"]] == [newer["id"], old["id"]]

    @pytest.mark.asyncio
    async def test_link_only_appears_once_related(
        self, client: AsyncClient, auth_headers: Headers, owner: Actor, outsider: Actor
    ):
        data = await _create(client, auth_headers(owner))

        before = await client.get("/api/v1/reservations", headers=auth_headers(outsider))
        await client.put(
            f"/api/v1/reservations/{data['id']}/attendance",
            json={"status": "confirmed"},
            headers=auth_headers(outsider),
        )
        after = await client.get("/api/v1/reservations", headers=auth_headers(outsider))

        assert before.json()["data"] == []
        assert [r["id"] for r in after.json()["data"]] == [data["id"]]
