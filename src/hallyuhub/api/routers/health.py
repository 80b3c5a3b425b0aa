"""Health check endpoints for Docker/Kubernetes liveness and readiness checks."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

router = APIRouter(prefix="/health", tags=["Health"])


class LivenessStatus(BaseModel):
    """Simple liveness response."""

    status: str = Field(description="alive or dead")
    timestamp: str = Field(description="ISO timestamp")


class ReadinessStatus(BaseModel):
    """Readiness response."""

    status: str = Field(description="ready or not_ready")
    timestamp: str = Field(description="ISO timestamp")
    database: bool = Field(description="Database connection OK")
    tmdb_configured: bool = Field(description="TMDB credentials present")
    uptime_seconds: float | None = Field(default=None, description="Seconds since app started")


@router.get("/live", response_model=LivenessStatus)
async def liveness_check() -> LivenessStatus:
    """Returns 200 while the process is running. No dependency checks."""
    return LivenessStatus(
        status="alive",
        timestamp=datetime.now(UTC).isoformat(),
    )


# Hey future me - only the DATABASE decides readiness. Missing TMDB credentials are reported
# but the app still serves duplicate review/merge without them.
@router.get("/ready", response_model=ReadinessStatus)
async def readiness_check(request: Request) -> JSONResponse:
    """Returns 200 if the database answers, 503 otherwise."""
    now = datetime.now(UTC)

    db_ok = False
    db = getattr(request.app.state, "db", None)
    if db is not None:
        try:
            db_ok = await db.ping()
        except Exception:
            db_ok = False

    tmdb = getattr(request.app.state, "tmdb_client", None)
    startup_time = getattr(request.app.state, "startup_time", None)

    response = ReadinessStatus(
        status="ready" if db_ok else "not_ready",
        timestamp=now.isoformat(),
        database=db_ok,
        tmdb_configured=bool(tmdb is not None and tmdb.is_configured),
        uptime_seconds=(now - startup_time).total_seconds() if startup_time else None,
    )

    status_code = status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=status_code)
