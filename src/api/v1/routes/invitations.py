"""Invitation API routes."""

from fastapi import APIRouter, Depends, Request, status

from api.dependencies.auth import CurrentActor
from api.v1.dependencies import get_invitation_service
from api.v1.schemas.invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    InvitationCreate,
    InvitationDetailResponse,
    InvitationListResponse,
    InvitationResponse,
)
from core.rate_limit import limiter
from domain.entities.invitation import Invitation
from domain.services.invitation_service import InvitationService, build_invite_link

# Group-scoped invitation routes
group_invitations_router = APIRouter(
    prefix="/groups/{group_id}/invitations",
    tags=["invitations"],
)

# Reservation-scoped invitation routes
reservation_invitations_router = APIRouter(
    prefix="/reservations/{reservation_id}/invitations",
    tags=["invitations"],
)

# Token routes (accept, revoke)
invitations_router = APIRouter(
    prefix="/invitations",
    tags=["invitations"],
)


@group_invitations_router.post(
    "",
    response_model=InvitationDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create group invitation",
    responses={
        201: {"description": "Invitation created"},
        403: {"description": "Not a group admin"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_group_invitation(
    request: Request,
    group_id: str,
    body: InvitationCreate,
    actor: CurrentActor,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Create a 7-day invite to join a group. Requires group admin."""
    invitation = await service.issue_group_invite(group_id, actor.id, body.channel)
    return InvitationDetailResponse(data=_build_response(invitation))


@group_invitations_router.get(
    "",
    response_model=InvitationListResponse,
    summary="List group invitations",
    responses={
        403: {"description": "Not a group admin"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_group_invitations(
    request: Request,
    group_id: str,
    actor: CurrentActor,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationListResponse:
    """List the invites issued for a group. Requires group admin."""
    invitations = await service.get_for_group(group_id, actor.id)
    data = [_build_response(inv) for inv in invitations]
    return InvitationListResponse(data=data, meta={"total": len(data)})


@reservation_invitations_router.post(
    "",
    response_model=InvitationDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create reservation invitation",
    responses={
        201: {"description": "Invitation created"},
        403: {"description": "Not the reservation creator"},
        404: {"description": "Reservation not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_reservation_invitation(
    request: Request,
    reservation_id: str,
    body: InvitationCreate,
    actor: CurrentActor,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Create a guest-access invite for one reservation. Creator only."""
    invitation = await service.issue_reservation_invite(reservation_id, actor.id, body.channel)
    return InvitationDetailResponse(data=_build_response(invitation))


@invitations_router.post(
    "/{token}/accept",
    response_model=AcceptInvitationResponse,
    summary="Accept invitation",
    responses={
        200: {"description": "Invitation accepted"},
        404: {"description": "Invitation not found"},
        409: {"description": "Invitation expired or revoked"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def accept_invitation(
    request: Request,
    token: str,
    body: AcceptInvitationRequest,
    actor: CurrentActor,
    service: InvitationService = Depends(get_invitation_service),
) -> AcceptInvitationResponse:
    """Redeem an invite token for membership or guest access."""
    result = await service.accept_invite(
        token,
        actor.id,
        body.display_name or actor.display_name,
    )
    return AcceptInvitationResponse(
        target_type=result.invitation.target_type.value,
        group_id=result.group.id if result.group else None,
        reservation_id=result.reservation.id if result.reservation else None,
    )


@invitations_router.delete(
    "/{token}",
    response_model=InvitationDetailResponse,
    summary="Revoke invitation",
    responses={
        403: {"description": "Not the issuer or a group admin"},
        404: {"description": "Invitation not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def revoke_invitation(
    request: Request,
    token: str,
    actor: CurrentActor,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Revoke an invite token."""
    invitation = await service.revoke_invite(token, actor.id)
    return InvitationDetailResponse(data=_build_response(invitation))


def _build_response(invitation: Invitation) -> InvitationResponse:
    """Convert domain entity to response schema."""
    return InvitationResponse(
        token=invitation.token,
        target_type=invitation.target_type.value,
        group_id=invitation.group_id,
        reservation_id=invitation.reservation_id,
        created_by_actor_id=invitation.created_by_actor_id,
        channel=invitation.channel.value,
        status=invitation.status.value,
        created_at=invitation.created_at,
        expires_at=invitation.expires_at,
        invite_link=build_invite_link(invitation.token),
    )
