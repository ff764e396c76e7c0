"""Fldr CRUD endpoints — the remote store contract the sync engine talks to."""

from fastapi import APIRouter, Depends, HTTPException, status

from fldr_sync.application.schemas.fldr import FldrCreate, FldrPatch, FldrResponse
from fldr_sync.application.services.fldr_service import FldrService
from fldr_sync.domain.exceptions import EntityNotFoundError, RecordShapeError
from fldr_sync.infrastructure.dependencies import get_fldr_service

router = APIRouter(prefix="/fldrs", tags=["Fldrs"])


@router.get("", response_model=list[FldrResponse])
async def list_fldrs(
    service: FldrService = Depends(get_fldr_service),
) -> list[FldrResponse]:
    """Retrieve every fldr, ordered by start date."""
    records = await service.list_records()
    return [FldrResponse.model_validate(r) for r in records]


@router.get("/{record_id}", response_model=FldrResponse)
async def get_fldr(
    record_id: str,
    service: FldrService = Depends(get_fldr_service),
) -> FldrResponse:
    """Retrieve a single fldr by ID."""
    try:
        record = await service.get_record(record_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return FldrResponse.model_validate(record)


@router.post("", response_model=FldrResponse, status_code=status.HTTP_201_CREATED)
async def create_fldr(
    data: FldrCreate,
    service: FldrService = Depends(get_fldr_service),
) -> FldrResponse:
    """Create a new fldr (or replay an offline create with its client id)."""
    try:
        record = await service.create_record(data)
    except RecordShapeError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return FldrResponse.model_validate(record)


@router.patch("/{record_id}", response_model=FldrResponse)
async def patch_fldr(
    record_id: str,
    data: FldrPatch,
    service: FldrService = Depends(get_fldr_service),
) -> FldrResponse:
    """Apply a partial update to a fldr."""
    try:
        record = await service.update_record(record_id, data)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RecordShapeError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return FldrResponse.model_validate(record)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fldr(
    record_id: str,
    service: FldrService = Depends(get_fldr_service),
) -> None:
    """Delete a fldr by ID."""
    try:
        await service.delete_record(record_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
