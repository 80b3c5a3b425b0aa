"""Admin filmography sync endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hallyuhub.api.dependencies import get_filmography_sync_service
from hallyuhub.application.services.filmography_sync_service import FilmographySyncService
from hallyuhub.domain.entities import SyncStrategy

router = APIRouter(prefix="/admin/filmography", tags=["Admin - Filmography"])


class FilmographySyncRequest(BaseModel):
    """Manual filmography sync trigger."""

    artist_ids: list[str] | None = None
    strategy: SyncStrategy = SyncStrategy.SMART_MERGE
    concurrency: int = Field(default=3, ge=1, le=10)


@router.get("", summary="Filmography sync statistics")
async def get_filmography_stats(
    service: FilmographySyncService = Depends(get_filmography_sync_service),
) -> dict[str, int]:
    return await service.get_filmography_stats()


# Hey future me - this one runs INLINE (the admin waits for the result table). For big
# batches use the cron endpoint, which answers 202 and works in the background.
@router.post("", summary="Sync filmographies")
async def sync_filmographies(
    request: FilmographySyncRequest,
    service: FilmographySyncService = Depends(get_filmography_sync_service),
) -> dict[str, Any]:
    """Sync the given artists, or the outdated ones when no ids are sent."""
    if request.artist_ids:
        batch = await service.sync_multiple_artists(
            request.artist_ids, request.concurrency, request.strategy
        )
    else:
        batch = await service.sync_outdated_filmographies(concurrency=request.concurrency)
    return {"success": True, **batch.to_dict()}
