"""FastAPI application factory."""

from fastapi import FastAPI

from hallyuhub import __version__
from hallyuhub.api.exception_handlers import register_exception_handlers
from hallyuhub.api.routers import api_router, health
from hallyuhub.config import Settings
from hallyuhub.infrastructure.lifecycle import lifespan
from hallyuhub.infrastructure.observability import RequestLoggingMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings to run with. None means get_settings() (env/.env), tests pass their own.
    """
    app = FastAPI(
        title="HallyuHub",
        description="K-culture catalog enrichment: TMDB/MusicBrainz syncs and artist deduplication",
        version=__version__,
        lifespan=lifespan,
    )
    # Read by lifespan before it falls back to get_settings()
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(api_router, prefix="/api")

    return app
