"""ROI calculator and global search."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from silent_money.dependencies import get_insights_service
from silent_money.models.insights import RoiProjection, RoiRequest, SearchResults
from silent_money.services.insights_service import InsightsService, calculate_roi

router = APIRouter(prefix="/insights", tags=["Insights"])


@router.post("/roi", response_model=RoiProjection, summary="Project returns on an investment")
async def roi(payload: RoiRequest) -> RoiProjection:
    return calculate_roi(payload)


@router.get("/search", response_model=SearchResults, summary="Search ideas and franchises")
async def search(
    q: Optional[str] = Query(None, max_length=100),
    service: InsightsService = Depends(get_insights_service),
) -> SearchResults:
    """Queries shorter than two characters return no hits."""
    return await service.global_search(q)
