"""Domain entities: enums and result objects shared by the sync and merge services."""

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any


# Hey future me, SyncStrategy decides what happens to EXISTING relation rows when a sync runs:
# - FULL_REPLACE: wipe the artist's existing rows first, then add everything fresh
# - INCREMENTAL: only add what's missing, never touch existing rows
# - SMART_MERGE: add missing AND update existing (role changes, backfill nulls)
# Stored/accepted as the uppercase string so admin payloads stay readable.
class SyncStrategy(str, Enum):
    """Merge strategy applied by sync services."""

    FULL_REPLACE = "FULL_REPLACE"
    INCREMENTAL = "INCREMENTAL"
    SMART_MERGE = "SMART_MERGE"


class TmdbSyncStatus(str, Enum):
    """TMDB filmography sync state stored on the artist row."""

    PENDING = "PENDING"
    SYNCED = "SYNCED"
    NOT_FOUND = "NOT_FOUND"
    ERROR = "ERROR"


class ProductionOutcome(str, Enum):
    """What happened to a single production during a filmography sync."""

    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"


class Confidence(str, Enum):
    """Confidence of a duplicate pair."""

    HIGH = "high"
    MEDIUM = "medium"


class ProductionType(str, Enum):
    """Production type as stored in the catalog."""

    FILME = "FILME"
    SERIE = "SERIE"

    @classmethod
    def from_tmdb_type(cls, tmdb_type: str) -> "ProductionType":
        return cls.FILME if tmdb_type == "movie" else cls.SERIE


class AlbumType(str, Enum):
    """Discography release types."""

    ALBUM = "ALBUM"
    EP = "EP"
    SINGLE = "SINGLE"


ARTIST_ENTITY_TYPE = "ARTIST"


@dataclass
class DuplicateCandidate:
    """Snapshot of an artist row used in duplicate review."""

    id: str
    name_romanized: str
    name_hangul: str | None = None
    birth_name: str | None = None
    birth_date: date | None = None
    height: str | None = None
    blood_type: str | None = None
    bio: str | None = None
    primary_image_url: str | None = None
    stage_names: list[str] = field(default_factory=list)
    mbid: str | None = None
    tmdb_id: str | None = None
    agency_id: str | None = None
    agency_name: str | None = None
    production_count: int = 0
    album_count: int = 0
    musical_group_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["birth_date"] = self.birth_date.isoformat() if self.birth_date else None
        return data


@dataclass
class DuplicatePair:
    """Two artists that are probably the same person."""

    id: str
    a: DuplicateCandidate
    b: DuplicateCandidate
    reason: str
    confidence: Confidence

    @staticmethod
    def make_key(first_id: str, second_id: str) -> str:
        """Order-independent pair key ("idA:idB", sorted)."""
        return ":".join(sorted((first_id, second_id)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "a": self.a.to_dict(),
            "b": self.b.to_dict(),
            "reason": self.reason,
            "confidence": self.confidence.value,
        }


@dataclass
class MergeResult:
    """Outcome of merging one artist into another."""

    kept_id: str
    kept_name: str
    deleted_id: str
    deleted_name: str
    favorites_moved: int = 0
    productions_moved: int = 0
    memberships_moved: int = 0
    news_moved: int = 0
    albums_moved: int = 0
    activities_moved: int = 0
    fields_updated: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SyncResult:
    """Result of syncing a single entity."""

    artist_id: str
    success: bool = False
    artist_name: str = ""
    tmdb_id: int | None = None
    added_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BatchSyncResult:
    """Aggregate of a batch sync run."""

    total: int
    success_count: int
    failure_count: int
    results: list[SyncResult] = field(default_factory=list)
    duration_ms: int = 0

    @classmethod
    def from_results(
        cls, total: int, results: list[SyncResult], duration_ms: int
    ) -> "BatchSyncResult":
        success_count = sum(1 for r in results if r.success)
        return cls(
            total=total,
            success_count=success_count,
            failure_count=len(results) - success_count,
            results=results,
            duration_ms=duration_ms,
        )

    @property
    def total_added(self) -> int:
        return sum(r.added_count for r in self.results)

    @property
    def total_updated(self) -> int:
        return sum(r.updated_count for r in self.results)

    def summary(self) -> dict[str, Any]:
        """Counts only, without per-item results."""
        return {
            "total": self.total,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "total_added": self.total_added,
            "total_updated": self.total_updated,
            "duration_ms": self.duration_ms,
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.summary()
        data["results"] = [r.to_dict() for r in self.results]
        return data


__all__ = [
    "ARTIST_ENTITY_TYPE",
    "AlbumType",
    "BatchSyncResult",
    "Confidence",
    "DuplicateCandidate",
    "DuplicatePair",
    "MergeResult",
    "ProductionOutcome",
    "ProductionType",
    "SyncResult",
    "SyncStrategy",
    "TmdbSyncStatus",
]
