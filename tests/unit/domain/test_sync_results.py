"""Tests for sync result aggregation and duplicate pair keys."""

from hallyuhub.domain.entities import (
    BatchSyncResult,
    DuplicatePair,
    ProductionType,
    SyncResult,
)


class TestDuplicatePairKey:
    def test_key_is_order_independent(self) -> None:
        assert DuplicatePair.make_key("b", "a") == DuplicatePair.make_key("a", "b") == "a:b"


class TestProductionType:
    def test_from_tmdb_type(self) -> None:
        assert ProductionType.from_tmdb_type("movie") == ProductionType.FILME
        assert ProductionType.from_tmdb_type("tv") == ProductionType.SERIE


class TestBatchSyncResult:
    def test_from_results_counts(self) -> None:
        results = [
            SyncResult(artist_id="1", success=True, added_count=3, updated_count=1),
            SyncResult(artist_id="2", success=True, added_count=2),
            SyncResult(artist_id="3", success=False, errors=["boom"]),
        ]

        batch = BatchSyncResult.from_results(3, results, duration_ms=42)

        assert batch.total == 3
        assert batch.success_count == 2
        assert batch.failure_count == 1
        assert batch.total_added == 5
        assert batch.total_updated == 1

    def test_to_dict_contains_results(self) -> None:
        batch = BatchSyncResult.from_results(1, [SyncResult(artist_id="1", success=True)], 5)

        data = batch.to_dict()

        assert data["success_count"] == 1
        assert data["duration_ms"] == 5
        assert data["results"][0]["artist_id"] == "1"
        assert "results" not in batch.summary()
