"""API router initialization."""

# Hey future me, api_router gets mounted at /api in main.py. Each router module defines its own
# prefix, so endpoints become /api/admin/artists/duplicates, /api/cron/sync-cast, etc.
# The health router is NOT in here - it lives at /health/*, outside /api.

from fastapi import APIRouter

from hallyuhub.api.routers import (
    admin_artists,
    admin_filmography,
    admin_productions,
    cron,
    health,
)

api_router = APIRouter()

api_router.include_router(admin_artists.router)
api_router.include_router(admin_filmography.router)
api_router.include_router(admin_productions.router)
api_router.include_router(cron.router)

__all__ = [
    "admin_artists",
    "admin_filmography",
    "admin_productions",
    "api_router",
    "cron",
    "health",
]
