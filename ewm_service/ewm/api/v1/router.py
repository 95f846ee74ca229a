"""
API v1 router for EWM Service.
"""

from fastapi import APIRouter

from .events_private import router as events_private_router
from .requests_private import router as requests_private_router
from .events_admin import router as events_admin_router
from .events_public import router as events_public_router

router = APIRouter(prefix="/api/v1")

# Include sub-routers
router.include_router(events_private_router)
router.include_router(requests_private_router)
router.include_router(events_admin_router)
router.include_router(events_public_router)
