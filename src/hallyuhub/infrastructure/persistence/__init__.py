"""Infrastructure persistence layer."""

from .database import Database
from .models import (
    ActivityModel,
    AgencyModel,
    AlbumModel,
    ArtistGroupMembershipModel,
    ArtistModel,
    ArtistProductionModel,
    Base,
    CronLockModel,
    FavoriteModel,
    MusicalGroupModel,
    NewsArtistModel,
    NewsModel,
    ProductionModel,
    ensure_utc_aware,
    utc_now,
)

__all__ = [
    # Database
    "Database",
    "Base",
    # Models
    "ActivityModel",
    "AgencyModel",
    "AlbumModel",
    "ArtistGroupMembershipModel",
    "ArtistModel",
    "ArtistProductionModel",
    "CronLockModel",
    "FavoriteModel",
    "MusicalGroupModel",
    "NewsArtistModel",
    "NewsModel",
    "ProductionModel",
    # Helpers
    "ensure_utc_aware",
    "utc_now",
]
