"""Bounded-concurrency batch execution shared by the sync services."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence

from hallyuhub.domain.entities import BatchSyncResult, SyncResult

logger = logging.getLogger(__name__)


# Hey future me - why Semaphore + gather(return_exceptions=True)?
# - Semaphore: at most `concurrency` workers hit TMDB/MusicBrainz and the DB at once
# - return_exceptions: one failed item must NOT cancel the rest of the batch
# Results come back in input order, failures are turned into results by on_error.
async def run_bounded[T, R](
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int,
    on_error: Callable[[T, BaseException], R],
) -> list[R]:
    """Run worker over items with at most `concurrency` in flight.

    Args:
        items: Work items
        worker: Coroutine function processing one item
        concurrency: Max simultaneous workers (values below 1 are treated as 1)
        on_error: Builds the result for an item whose worker raised

    Returns:
        One result per item, in input order
    """
    sem = asyncio.Semaphore(max(1, concurrency))
    completed = 0

    async def run_one(item: T) -> R:
        nonlocal completed
        async with sem:
            result = await worker(item)
            completed += 1
            logger.debug(f"Batch progress: {completed}/{len(items)}")
            return result

    outcomes = await asyncio.gather(*(run_one(item) for item in items), return_exceptions=True)

    results: list[R] = []
    for item, outcome in zip(items, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                # CancelledError/KeyboardInterrupt must still propagate
                raise outcome
            logger.error(f"Batch item {item!r} failed: {outcome}")
            results.append(on_error(item, outcome))
        else:
            results.append(outcome)
    return results


def failed_sync_result(artist_id: str, error: BaseException) -> SyncResult:
    """Result for an artist whose sync raised before producing its own result."""
    return SyncResult(artist_id=artist_id, success=False, artist_name="Unknown", errors=[str(error)])


async def sync_batch(
    artist_ids: Sequence[str],
    sync_one: Callable[[str], Awaitable[SyncResult]],
    concurrency: int,
) -> BatchSyncResult:
    """Sync a list of artists with bounded concurrency and aggregate the outcome."""
    start = time.perf_counter()
    results = await run_bounded(artist_ids, sync_one, concurrency, failed_sync_result)
    duration_ms = int((time.perf_counter() - start) * 1000)
    return BatchSyncResult.from_results(len(artist_ids), results, duration_ms)
