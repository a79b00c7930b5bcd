"""Reservation API routes."""

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentActor
from api.v1.dependencies import get_listing_service, get_reservation_service
from api.v1.schemas.reservation import (
    AttendanceRequest,
    ReassignOwnerRequest,
    ReservationCreate,
    ReservationDetailResponse,
    ReservationListResponse,
    ReservationResponse,
    ReservationUpdate,
    RulesPayload,
    SignupDetailResponse,
    SignupResponse,
    SignupResultResponse,
)
from core.rate_limit import limiter
from domain.entities.reservation import ReservationRules
from domain.services.listing_service import ListingMode, ListingService
from domain.services.reservation_service import ReservationService

router = APIRouter(prefix="/reservations", tags=["reservations"])


def _to_rules(payload: RulesPayload) -> ReservationRules:
    return ReservationRules(
        max_accepted=payload.max_accepted,
        priority_actor_ids=list(payload.priority_actor_ids),
        allow_waitlist=payload.allow_waitlist,
        signup_deadline=payload.signup_deadline,
    )


@router.get(
    "",
    response_model=ReservationListResponse,
    summary="List my reservations",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_reservations(
    request: Request,
    actor: CurrentActor,
    mode: ListingMode = Query(ListingMode.ACTIVE),
    limit: int | None = Query(None),
    service: ListingService = Depends(get_listing_service),
) -> ReservationListResponse:
    """Active reservations by start time, or past ones newest first."""
    reservations = await service.list_reservations(actor.id, mode=mode, limit=limit)
    data = [ReservationResponse.model_validate(r) for r in reservations]
    return ReservationListResponse(data=data, meta={"total": len(data), "mode": mode.value})


@router.post(
    "",
    response_model=ReservationDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reservation",
    responses={
        400: {"description": "Invalid start time or missing group"},
        403: {"description": "Not a member of the target group"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_reservation(
    request: Request,
    body: ReservationCreate,
    actor: CurrentActor,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetailResponse:
    """Create a reservation owned by the caller."""
    reservation = await service.create(
        actor_id=actor.id,
        start_date_time=body.start_date_time,
        duration_minutes=body.duration_minutes,
        group_id=body.group_id,
        visibility_scope=body.visibility_scope,
        court_name=body.court_name,
        court_id=body.court_id,
        venue_id=body.venue_id,
        venue_name=body.venue_name,
        venue_address=body.venue_address,
        creator_name=body.creator_name or actor.display_name,
        rules=_to_rules(body.rules) if body.rules else None,
    )
    return ReservationDetailResponse(data=ReservationResponse.model_validate(reservation))


@router.get(
    "/{reservation_id}",
    response_model=ReservationDetailResponse,
    summary="Get a reservation",
    responses={
        403: {"description": "Not visible to the caller"},
        404: {"description": "Reservation not found"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_reservation(
    request: Request,
    reservation_id: str,
    actor: CurrentActor,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetailResponse:
    """Get a reservation visible to the caller."""
    reservation = await service.get(reservation_id, actor.id)
    return ReservationDetailResponse(data=ReservationResponse.model_validate(reservation))


@router.patch(
    "/{reservation_id}",
    response_model=ReservationDetailResponse,
    summary="Edit a reservation",
    responses={
        403: {"description": "Not the creator or a group admin"},
        404: {"description": "Reservation not found"},
        409: {"description": "Reservation cancelled"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def update_reservation(
    request: Request,
    reservation_id: str,
    body: ReservationUpdate,
    actor: CurrentActor,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetailResponse:
    """Edit venue, court, time or scope."""
    reservation = await service.update_details(
        reservation_id,
        actor.id,
        **body.model_dump(exclude_unset=True, exclude_none=True),
    )
    return ReservationDetailResponse(data=ReservationResponse.model_validate(reservation))


@router.post(
    "/{reservation_id}/cancel",
    response_model=ReservationDetailResponse,
    summary="Cancel a reservation",
    responses={
        403: {"description": "Not the creator or a group admin"},
        404: {"description": "Reservation not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def cancel_reservation(
    request: Request,
    reservation_id: str,
    actor: CurrentActor,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetailResponse:
    """Cancel a reservation. Cancelling twice is a no-op."""
    reservation = await service.cancel(reservation_id, actor.id)
    return ReservationDetailResponse(data=ReservationResponse.model_validate(reservation))


@router.put(
    "/{reservation_id}/attendance",
    response_model=SignupDetailResponse,
    summary="Set my attendance",
    responses={
        400: {"description": "Invalid attendance status"},
        403: {"description": "No access to the reservation"},
        404: {"description": "Reservation not found"},
        409: {"description": "Reservation cancelled"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def set_attendance(
    request: Request,
    reservation_id: str,
    body: AttendanceRequest,
    actor: CurrentActor,
    service: ReservationService = Depends(get_reservation_service),
) -> SignupDetailResponse:
    """Record the caller's attendance intent."""
    signup = await service.set_attendance(
        reservation_id,
        actor.id,
        body.status,
        display_name=body.display_name or actor.display_name,
    )
    return SignupDetailResponse(data=SignupResponse.model_validate(signup))


@router.put(
    "/{reservation_id}/rules",
    response_model=ReservationDetailResponse,
    summary="Update attendance rules",
    responses={
        403: {"description": "Not the creator"},
        404: {"description": "Reservation not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def update_rules(
    request: Request,
    reservation_id: str,
    body: RulesPayload,
    actor: CurrentActor,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetailResponse:
    """Replace the attendance rules. Creator only."""
    reservation = await service.update_rules(reservation_id, _to_rules(body), actor.id)
    return ReservationDetailResponse(data=ReservationResponse.model_validate(reservation))


@router.post(
    "/{reservation_id}/owner",
    response_model=ReservationDetailResponse,
    summary="Reassign reservation owner",
    responses={
        403: {"description": "Not a group admin"},
        404: {"description": "Reservation or group not found"},
        409: {"description": "Link-only reservation or target not a member"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def reassign_owner(
    request: Request,
    reservation_id: str,
    body: ReassignOwnerRequest,
    actor: CurrentActor,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetailResponse:
    """Hand a group reservation over to another member. Group admin only."""
    reservation = await service.reassign_owner(
        reservation_id,
        target_actor_id=body.target_actor_id,
        target_name=body.target_name,
        actor_id=actor.id,
    )
    return ReservationDetailResponse(data=ReservationResponse.model_validate(reservation))


@router.get(
    "/{reservation_id}/signups",
    response_model=SignupResultResponse,
    summary="Accepted players and waitlist",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_signup_result(
    request: Request,
    reservation_id: str,
    actor: CurrentActor,
    service: ReservationService = Depends(get_reservation_service),
) -> SignupResultResponse:
    """Split active signups into accepted players and waitlist."""
    reservation = await service.get(reservation_id, actor.id)
    result = reservation.signup_result()
    return SignupResultResponse(
        accepted=[SignupResponse.model_validate(s) for s in result.accepted],
        waitlist=[SignupResponse.model_validate(s) for s in result.waitlist],
    )
