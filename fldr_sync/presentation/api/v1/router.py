"""V1 API router — everything the sync engine's remote store client calls."""

from fastapi import APIRouter

from fldr_sync.presentation.api.v1.endpoints.health import router as health_router
from fldr_sync.presentation.api.v1.endpoints.fldrs import router as fldrs_router

router = APIRouter(prefix="/api/v1")
router.include_router(health_router)
router.include_router(fldrs_router)
