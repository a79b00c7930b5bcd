"""API v1 router configuration."""

from fastapi import APIRouter

from api.v1.routes.audit import router as audit_router
from api.v1.routes.groups import router as groups_router
from api.v1.routes.invitations import (
    group_invitations_router,
    invitations_router,
    reservation_invitations_router,
)
from api.v1.routes.reservations import router as reservations_router

router = APIRouter()
router.include_router(groups_router)
router.include_router(group_invitations_router)
router.include_router(audit_router)
router.include_router(reservations_router)
router.include_router(reservation_invitations_router)
router.include_router(invitations_router)
