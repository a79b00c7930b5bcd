"""Invitation service layer with business logic."""

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from core.config import settings
from core.exceptions import (
    AuthorizationError,
    GroupNotFoundError,
    InvitationExpiredError,
    InvitationNotFoundError,
    NotGroupAdminError,
    ReservationNotFoundError,
)
from domain.entities.group import Group
from domain.entities.invitation import (
    Invitation,
    InvitationStatus,
    InviteTargetType,
    normalize_channel,
)
from domain.entities.reservation import DEFAULT_GROUP_ID, Reservation
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.authorization import is_admin, is_reservation_creator
from domain.services.group_service import GroupService
from domain.services.transaction import run_in_transaction

logger = structlog.get_logger()


def build_invite_link(token: str, base_url: str | None = None) -> str:
    """Public join URL for a token."""
    base = (base_url or settings.invite_base_url).rstrip("/")
    return f"{base}/join/{token}"


@dataclass
class InviteAcceptance:
    """What an accepted invite granted: a group membership or guest access."""

    invitation: Invitation
    group: Group | None = None
    reservation: Reservation | None = None


class InvitationService:
    """Service layer for group and reservation invite tokens."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        group_service: GroupService,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._groups = group_service
        self._clock = clock

    def _mint(
        self,
        target_type: InviteTargetType,
        group_id: str,
        actor_id: str,
        channel: str | None,
        reservation_id: str | None = None,
    ) -> Invitation:
        now = self._clock()
        return Invitation(
            target_type=target_type,
            group_id=group_id,
            reservation_id=reservation_id,
            created_by_actor_id=actor_id,
            token=secrets.token_urlsafe(32),
            channel=normalize_channel(channel),
            created_at=now,
            expires_at=now + timedelta(days=settings.invite_expiry_days),
        )

    async def issue_group_invite(
        self, group_id: str, actor_id: str, channel: str | None = None
    ) -> Invitation:
        """Mint a group membership invite.

        Raises:
            GroupNotFoundError: If the group is missing or deleted.
            NotGroupAdminError: If the actor is not a group admin.
        """
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group or group.is_deleted:
                raise GroupNotFoundError(group_id)
            if not is_admin(group, actor_id):
                raise NotGroupAdminError(group_id)

            invitation = await uow.invitations.create(
                self._mint(InviteTargetType.GROUP, group_id, actor_id, channel)
            )
            await uow.commit()

        logger.info(
            "invite_issued",
            target_type=invitation.target_type.value,
            group_id=group_id,
            actor_id=actor_id,
        )
        return invitation

    async def issue_reservation_invite(
        self, reservation_id: str, actor_id: str, channel: str | None = None
    ) -> Invitation:
        """Mint a guest-access invite for one reservation. Creator only.

        The owning group id is kept for provenance; redeeming the token never
        grants group membership.
        """
        async with self._uow_factory() as uow:
            reservation = await uow.reservations.get(reservation_id)
            if not reservation:
                raise ReservationNotFoundError(reservation_id)
            if not is_reservation_creator(reservation, actor_id):
                raise AuthorizationError("Only the reservation creator can share it")

            group_id = reservation.group_id if reservation.is_group_scoped else DEFAULT_GROUP_ID
            invitation = await uow.invitations.create(
                self._mint(
                    InviteTargetType.RESERVATION,
                    group_id,
                    actor_id,
                    channel,
                    reservation_id=reservation_id,
                )
            )
            await uow.commit()

        logger.info(
            "invite_issued",
            target_type=invitation.target_type.value,
            reservation_id=reservation_id,
            actor_id=actor_id,
        )
        return invitation

    async def _load_redeemable(
        self, uow: IUnitOfWork, token: str, for_update: bool = False
    ) -> Invitation:
        invitation = await uow.invitations.get_by_token(token, for_update=for_update)
        if not invitation:
            raise InvitationNotFoundError()
        if not invitation.is_redeemable(self._clock()):
            raise InvitationExpiredError()
        return invitation

    async def accept_invite(
        self, token: str, actor_id: str, display_name: str | None = None
    ) -> InviteAcceptance:
        """Redeem a token of either kind.

        Tokens stay valid for any number of actors until they expire or are
        revoked; redeeming twice is a no-op. The token is checked again inside
        the transaction that grants access, so a concurrent revoke wins.

        Raises:
            InvitationNotFoundError: If the token is unknown.
            InvitationExpiredError: If the invite is revoked or expired.
        """
        async with self._uow_factory() as uow:
            invitation = await self._load_redeemable(uow, token)

        async def guard(uow: IUnitOfWork) -> Invitation:
            return await self._load_redeemable(uow, token, for_update=True)

        if invitation.target_type == InviteTargetType.GROUP:
            group = await self._groups.add_member(
                invitation.group_id, actor_id, display_name, guard=guard
            )
            return InviteAcceptance(invitation=invitation, group=group)

        reservation_id = invitation.reservation_id or ""

        async def work(uow: IUnitOfWork) -> Reservation:
            await guard(uow)
            reservation = await uow.reservations.get(reservation_id, for_update=True)
            if not reservation:
                raise ReservationNotFoundError(reservation_id)
            if reservation.grant_guest_access(actor_id):
                await uow.reservations.update(reservation)
            return reservation

        reservation = await run_in_transaction(self._uow_factory, work)
        return InviteAcceptance(invitation=invitation, reservation=reservation)

    async def revoke_invite(self, token: str, actor_id: str) -> Invitation:
        """Revoke a token. Allowed for its issuer or an admin of its group."""

        async def work(uow: IUnitOfWork) -> Invitation:
            invitation = await uow.invitations.get_by_token(token, for_update=True)
            if not invitation:
                raise InvitationNotFoundError()
            if invitation.created_by_actor_id != actor_id:
                group = await uow.groups.get(invitation.group_id)
                if not group or group.is_deleted or not is_admin(group, actor_id):
                    raise AuthorizationError("Only the issuer or a group admin can revoke this invite")
            if invitation.status == InvitationStatus.REVOKED:
                return invitation
            return await uow.invitations.update_status(token, InvitationStatus.REVOKED)

        return await run_in_transaction(self._uow_factory, work)

    async def get_for_group(self, group_id: str, actor_id: str) -> list[Invitation]:
        """List a group's invites. Admin only."""
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group or group.is_deleted:
                raise GroupNotFoundError(group_id)
            if not is_admin(group, actor_id):
                raise NotGroupAdminError(group_id)
            return await uow.invitations.list_for_group(group_id)
