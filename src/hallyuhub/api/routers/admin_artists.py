"""Artist duplicate review & merge API endpoints.

Hey future me - the admin UI lists the pairs from GET /duplicates, the curator picks which
side to keep (and optionally fixes fields), then POSTs /merge. We NEVER merge automatically.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hallyuhub.api.dependencies import get_artist_merge_service
from hallyuhub.application.services.artist_merge_service import (
    ArtistFieldOverrides,
    ArtistMergeService,
)

router = APIRouter(prefix="/admin/artists", tags=["Admin - Artists"])


class MergeRequest(BaseModel):
    """Request to merge a duplicate artist into the one being kept."""

    keep_id: str = Field(min_length=1)
    delete_id: str = Field(min_length=1)
    # Keys present with null CLEAR the keeper's field, absent keys leave it alone
    field_overrides: ArtistFieldOverrides | None = None


@router.get(
    "/duplicates",
    summary="Find duplicate artists",
)
async def find_duplicate_artists(
    service: ArtistMergeService = Depends(get_artist_merge_service),
) -> dict[str, Any]:
    """Find probable duplicate artist pairs.

    High confidence: same TMDB id, MusicBrainz id or Hangul name.
    Medium confidence: one romanized name contains the other.
    """
    pairs = await service.find_duplicate_pairs()
    return {"pairs": [pair.to_dict() for pair in pairs], "total": len(pairs)}


@router.post(
    "/merge",
    summary="Merge two artists",
)
async def merge_artists(
    request: MergeRequest,
    service: ArtistMergeService = Depends(get_artist_merge_service),
) -> dict[str, Any]:
    """Merge `delete_id` into `keep_id`.

    Favorites, credits, group memberships, news links, albums and activities move to the
    kept artist. The request's transaction commits only if the whole merge succeeds.
    """
    result = await service.merge_artists(
        request.keep_id, request.delete_id, request.field_overrides
    )
    return {"success": True, **result.to_dict()}
