"""Configuration module for HallyuHub."""

from .settings import (
    DatabaseSettings,
    MusicBrainzSettings,
    ObservabilitySettings,
    Settings,
    SyncSettings,
    TMDBSettings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "MusicBrainzSettings",
    "ObservabilitySettings",
    "Settings",
    "SyncSettings",
    "TMDBSettings",
    "get_settings",
]
