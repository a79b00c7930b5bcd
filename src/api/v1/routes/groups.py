"""Group API routes."""

from fastapi import APIRouter, Depends, Request, status

from api.dependencies.auth import CurrentActor
from api.v1.dependencies import get_group_service, get_listing_service
from api.v1.schemas.group import (
    DefaultGroupRequest,
    GroupCreate,
    GroupDetailResponse,
    GroupListResponse,
    GroupRename,
    GroupResponse,
    SetMemberAdminRequest,
)
from core.rate_limit import limiter
from domain.services.group_service import GroupService
from domain.services.listing_service import ListingService

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get(
    "",
    response_model=GroupListResponse,
    summary="List my groups",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_groups(
    request: Request,
    actor: CurrentActor,
    service: ListingService = Depends(get_listing_service),
) -> GroupListResponse:
    """Groups where the caller is owner, admin or member, sorted by name."""
    groups = await service.list_groups_for_actor(actor.id)
    data = [GroupResponse.model_validate(g) for g in groups]
    return GroupListResponse(data=data, meta={"total": len(data)})


@router.post(
    "",
    response_model=GroupDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a group",
    responses={
        201: {"description": "Group created"},
        400: {"description": "Empty group name"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_group(
    request: Request,
    body: GroupCreate,
    actor: CurrentActor,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Create a group owned by the caller."""
    group = await service.create(
        name=body.name,
        actor_id=actor.id,
        display_name=body.display_name or actor.display_name,
    )
    return GroupDetailResponse(data=GroupResponse.model_validate(group))


@router.post(
    "/default",
    response_model=GroupDetailResponse,
    summary="Get or create my default group",
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def ensure_default_group(
    request: Request,
    body: DefaultGroupRequest,
    actor: CurrentActor,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Return the caller's first group, creating one when they have none."""
    group = await service.ensure_default_group(
        actor.id, body.display_name or actor.display_name
    )
    return GroupDetailResponse(data=GroupResponse.model_validate(group))


@router.get(
    "/{group_id}",
    response_model=GroupDetailResponse,
    summary="Get a group",
    responses={
        403: {"description": "Not a member"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_group(
    request: Request,
    group_id: str,
    actor: CurrentActor,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Get a group. Requires membership."""
    group = await service.get_by_id(group_id, actor.id)
    return GroupDetailResponse(data=GroupResponse.model_validate(group))


@router.patch(
    "/{group_id}",
    response_model=GroupDetailResponse,
    summary="Rename a group",
    responses={
        400: {"description": "Empty group name"},
        403: {"description": "Not a group admin"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def rename_group(
    request: Request,
    group_id: str,
    body: GroupRename,
    actor: CurrentActor,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Rename a group. Requires group admin."""
    group = await service.rename(group_id, body.name, actor.id)
    return GroupDetailResponse(data=GroupResponse.model_validate(group))


@router.delete(
    "/{group_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a group",
    responses={
        204: {"description": "Group deleted"},
        403: {"description": "Not the group owner"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def delete_group(
    request: Request,
    group_id: str,
    actor: CurrentActor,
    service: GroupService = Depends(get_group_service),
) -> None:
    """Soft-delete a group. Owner only."""
    await service.delete_group(group_id, actor.id)
    return None


# --- Group Member Management ---


@router.put(
    "/{group_id}/members/{member_actor_id}/admin",
    response_model=GroupDetailResponse,
    summary="Grant or revoke admin rights",
    responses={
        403: {"description": "Not a group admin"},
        404: {"description": "Group not found"},
        409: {"description": "Owner is immutable, target not a member, or last admin"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def set_member_admin(
    request: Request,
    group_id: str,
    member_actor_id: str,
    body: SetMemberAdminRequest,
    actor: CurrentActor,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Toggle a member's admin rights. Requires group admin."""
    group = await service.set_member_admin(
        group_id=group_id,
        target_actor_id=member_actor_id,
        make_admin=body.make_admin,
        actor_id=actor.id,
    )
    return GroupDetailResponse(data=GroupResponse.model_validate(group))


@router.delete(
    "/{group_id}/members/{member_actor_id}",
    response_model=GroupDetailResponse,
    summary="Remove group member",
    responses={
        403: {"description": "Not a group admin"},
        404: {"description": "Group not found"},
        409: {"description": "Owner is immutable or target not a member"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def remove_group_member(
    request: Request,
    group_id: str,
    member_actor_id: str,
    actor: CurrentActor,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Evict a member from a group. Requires group admin."""
    group = await service.remove_member(
        group_id=group_id,
        target_actor_id=member_actor_id,
        actor_id=actor.id,
    )
    return GroupDetailResponse(data=GroupResponse.model_validate(group))


@router.post(
    "/{group_id}/leave",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave a group",
    responses={
        404: {"description": "Group not found"},
        409: {"description": "The owner cannot leave"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def leave_group(
    request: Request,
    group_id: str,
    actor: CurrentActor,
    service: GroupService = Depends(get_group_service),
) -> None:
    """Leave a group the caller belongs to."""
    await service.leave_group(group_id, actor.id)
    return None
