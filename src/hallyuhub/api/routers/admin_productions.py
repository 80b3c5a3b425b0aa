"""Admin production endpoints: TMDB match and age rating sync."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hallyuhub.api.dependencies import (
    get_production_age_rating_service,
    get_production_match_service,
)
from hallyuhub.application.services.production_age_rating_service import (
    ProductionAgeRatingService,
)
from hallyuhub.application.services.production_match_service import ProductionMatchService
from hallyuhub.domain.exceptions import BusinessRuleViolation

router = APIRouter(prefix="/admin/productions", tags=["Admin - Productions"])


class AgeRatingSyncRequest(BaseModel):
    """Either one production or the pending batch."""

    production_id: str | None = None
    pending: bool = False
    limit: int = Field(default=20, ge=1, le=100)


@router.post("/age-rating", summary="Sync age ratings from TMDB")
async def sync_age_rating(
    request: AgeRatingSyncRequest,
    service: ProductionAgeRatingService = Depends(get_production_age_rating_service),
) -> dict[str, Any]:
    """Sync one production's age rating, or every production still missing one."""
    if request.production_id:
        result = await service.sync_production_age_rating(request.production_id)
        return {"success": True, **result.to_dict()}
    if request.pending:
        stats = await service.sync_pending_age_ratings(limit=request.limit)
        return {"success": True, **stats}
    raise BusinessRuleViolation("Send production_id or pending=true")


@router.post("/{production_id}/tmdb-match", summary="Match a production on TMDB")
async def match_production(
    production_id: str,
    service: ProductionMatchService = Depends(get_production_match_service),
) -> dict[str, Any]:
    result = await service.match_production(production_id)
    return {"success": True, **result.to_dict()}
