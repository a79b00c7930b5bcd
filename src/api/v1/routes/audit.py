"""Group audit log API routes."""

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies.auth import CurrentActor
from api.v1.dependencies import get_audit_service
from api.v1.schemas.audit import AuditEventListResponse, AuditEventResponse
from core.rate_limit import limiter
from domain.services.audit_service import AuditService

router = APIRouter(
    prefix="/groups/{group_id}/audit",
    tags=["audit"],
)


@router.get(
    "",
    response_model=AuditEventListResponse,
    summary="Get group audit log",
    responses={
        200: {"description": "Audit events, newest first"},
        403: {"description": "Not a member"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_group_audit(
    request: Request,
    group_id: str,
    actor: CurrentActor,
    limit: int | None = Query(None),
    service: AuditService = Depends(get_audit_service),
) -> AuditEventListResponse:
    """Get the audit log for a group. Requires membership."""
    events = await service.list_for_group(group_id, actor.id, limit=limit)
    data = [
        AuditEventResponse(
            id=e.id,
            group_id=e.group_id,
            type=e.type.value,
            actor_id=e.actor_id,
            actor_name=e.actor_name,
            target_id=e.target_id,
            target_name=e.target_name,
            metadata=e.metadata,
            created_at=e.created_at,
        )
        for e in events
    ]
    return AuditEventListResponse(data=data, meta={"total": len(data)})
