"""Cron job endpoints.

Hey future me - an external scheduler (cron-job.org, a k8s CronJob, whatever) POSTs here:

    POST /api/cron/sync-filmography?limit=10
    Authorization: Bearer <CRON_SECRET>        (or ?token=<CRON_SECRET>)

We answer 202 IMMEDIATELY and run the job as a background task - a discography batch can
take minutes (MusicBrainz 1 req/s) and schedulers time out after ~30s. Each job holds a DB
lock so two overlapping triggers never run the same job twice.
"""

import hmac
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import State

from hallyuhub.api.dependencies import get_app_settings, get_cron_lock_service
from hallyuhub.application.services import (
    ArtistGroupSyncService,
    CronLockService,
    DiscographySyncService,
    FilmographySyncService,
    ProductionAgeRatingService,
    ProductionCastService,
    ProductionMatchService,
    SocialLinksSyncService,
)
from hallyuhub.application.services.cron_lock_service import new_request_id
from hallyuhub.config import Settings
from hallyuhub.infrastructure.observability import set_correlation_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"])


@dataclass(frozen=True)
class CronJob:
    """A job the scheduler can trigger."""

    name: str
    description: str
    default_limit: int
    run: Callable[[State, int], Awaitable[dict[str, Any]]]


async def _run_filmography(state: State, limit: int) -> dict[str, Any]:
    service = FilmographySyncService(state.db, state.tmdb_client, state.tmdb_cache, state.settings.sync)
    batch = await service.sync_outdated_filmographies(limit=limit)
    return batch.summary()


async def _run_discography(state: State, limit: int) -> dict[str, Any]:
    service = DiscographySyncService(state.db, state.musicbrainz_client, state.settings.sync)
    batch = await service.sync_pending_artist_discographies(limit=limit)
    return batch.summary()


async def _run_social_links(state: State, limit: int) -> dict[str, Any]:
    service = SocialLinksSyncService(state.db, state.tmdb_client, state.settings.sync)
    return await service.sync_pending(limit=limit)


async def _run_cast(state: State, limit: int) -> dict[str, Any]:
    service = ProductionCastService(state.db, state.tmdb_client, state.settings.sync)
    return await service.sync_pending_production_casts(limit=limit)


async def _run_artist_groups(state: State, limit: int) -> dict[str, Any]:
    service = ArtistGroupSyncService(state.db, state.musicbrainz_client)
    return await service.sync_artist_groups(limit=limit)


async def _run_production_match(state: State, limit: int) -> dict[str, Any]:
    service = ProductionMatchService(state.db, state.tmdb_client)
    return await service.match_pending_productions(limit=limit)


async def _run_age_ratings(state: State, limit: int) -> dict[str, Any]:
    service = ProductionAgeRatingService(state.db, state.tmdb_client)
    return await service.sync_pending_age_ratings(limit=limit)


JOBS: dict[str, CronJob] = {
    job.name: job
    for job in (
        CronJob("sync-filmography", "Filmography sync", 10, _run_filmography),
        CronJob("sync-discography", "Discography sync", 5, _run_discography),
        CronJob("sync-social-links", "Social links sync", 10, _run_social_links),
        CronJob("sync-cast", "Cast sync", 5, _run_cast),
        CronJob("sync-artist-groups", "Artist group sync", 5, _run_artist_groups),
        CronJob("match-productions", "Production TMDB match", 5, _run_production_match),
        CronJob("sync-age-ratings", "Age rating sync", 20, _run_age_ratings),
    )
}


def _extract_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth.removeprefix("Bearer ").strip()
    return request.query_params.get("token")


# compare_digest on bytes: constant time, and False (not an error) for different lengths
def verify_cron_token(request: Request, settings: Settings = Depends(get_app_settings)) -> None:
    """Require the shared cron secret as bearer token or ?token=."""
    if not settings.cron_secret:
        logger.error("CRON_SECRET not configured, rejecting cron call")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cron secret not configured",
        )

    token = _extract_token(request)
    if token is None or not hmac.compare_digest(
        token.encode("utf-8"), settings.cron_secret.encode("utf-8")
    ):
        logger.warning(f"Unauthorized cron call to {request.url.path}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def _get_job(job_name: str) -> CronJob:
    job = JOBS.get(job_name)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown cron job '{job_name}'")
    return job


async def _run_job(
    job: CronJob, state: State, lock_service: CronLockService, request_id: str, limit: int
) -> None:
    set_correlation_id(request_id)
    logger.info(f"Cron job {job.name} started (limit={limit})", extra={"request_id": request_id})
    try:
        stats = await job.run(state, limit)
        logger.info(
            f"Cron job {job.name} finished: {stats}",
            extra={"request_id": request_id, "stats": stats},
        )
    except Exception:
        # Nobody awaits a background task, so this log line IS the error report
        logger.exception(f"Cron job {job.name} failed", extra={"request_id": request_id})
    finally:
        await lock_service.release(job.name, request_id)


@router.post("/{job_name}", status_code=status.HTTP_202_ACCEPTED)
async def trigger_cron_job(
    job_name: str,
    request: Request,
    background_tasks: BackgroundTasks,
    limit: int | None = Query(default=None, description="Items to process (1-20)"),
    _auth: None = Depends(verify_cron_token),
    settings: Settings = Depends(get_app_settings),
    lock_service: CronLockService = Depends(get_cron_lock_service),
) -> JSONResponse:
    """Start a cron job in the background."""
    job = _get_job(job_name)
    requested = job.default_limit if limit is None else limit
    effective_limit = min(max(1, requested), settings.sync.cron_max_limit)

    request_id = new_request_id(f"cron-{job.name}")
    if await lock_service.acquire(job.name, request_id) is None:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "success": False,
                "skipped": True,
                "reason": "already_running",
                "message": f"{job.description} is already running, this call was ignored",
            },
        )

    background_tasks.add_task(
        _run_job, job, request.app.state, lock_service, request_id, effective_limit
    )

    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={
            "status": "accepted",
            "message": f"{job.description} started in background",
            "request_id": request_id,
            "limit": effective_limit,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )


@router.get("/{job_name}")
async def cron_job_get_not_allowed(job_name: str) -> JSONResponse:
    """Schedulers sometimes default to GET - tell them what to do instead."""
    job = _get_job(job_name)
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={
            "error": "Method not allowed",
            "hint": f"Use POST /api/cron/{job.name} with 'Authorization: Bearer <CRON_SECRET>'",
        },
        headers={"Allow": "POST"},
    )
