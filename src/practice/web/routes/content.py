"""Content cache administration endpoints."""

import structlog
from fastapi import APIRouter, HTTPException, status

from practice.core.catalog import UnknownExerciseTypeError
from practice.core.stores import ContentItemNotFoundError
from practice.web.engine import get_selector
from practice.web.schemas import (
    InventoryEntryResponse,
    InventoryResponse,
    PregenerateRequest,
    PregenerateResponse,
    RetireResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/content", tags=["content"])


@router.get("/inventory", response_model=InventoryResponse)
def get_inventory() -> InventoryResponse:
    """Active item counts per (skill area, exercise type, band)."""
    entries = [
        InventoryEntryResponse(
            skill_area=e.skill_area,
            exercise_type=e.exercise_type,
            band_level=e.band_level,
            count=e.count,
        )
        for e in get_selector().inventory()
    ]
    return InventoryResponse(entries=entries, total=sum(e.count for e in entries))


@router.post("/pregenerate", response_model=PregenerateResponse)
def pregenerate(request: PregenerateRequest) -> PregenerateResponse:
    """Top up one cache pool; generation failures are reported, not raised."""
    try:
        report = get_selector().pre_generate(
            request.skill_area,
            request.exercise_type,
            request.band,
            target_count=request.target_count,
        )
    except UnknownExerciseTypeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return PregenerateResponse(generated=report.generated, errors=report.errors)


@router.post("/{item_id}/retire", response_model=RetireResponse)
def retire_item(item_id: str) -> RetireResponse:
    """Take an item out of rotation."""
    try:
        get_selector().retire(item_id)
    except ContentItemNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    logger.info("content_retired_via_api", content_item_id=item_id)
    return RetireResponse(id=item_id, is_active=False)
