"""Health endpoint — the route the sync engine's connectivity probe pings."""

from fastapi import APIRouter, Depends

from fldr_sync.application.interfaces import FldrRepository
from fldr_sync.config import get_settings
from fldr_sync.infrastructure.dependencies import get_fldr_repository

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    repository: FldrRepository = Depends(get_fldr_repository),
) -> dict:
    settings = get_settings()
    fldrs = await repository.get_all()
    return {
        "status": "healthy",
        "service": settings.app_title,
        "version": settings.app_version,
        "environment": settings.app_env,
        "fldrs": len(fldrs),
    }
