"""Database-backed cron locks.

Hey future me - the lock lives in the DB (cron_locks table), NOT in memory, because the
scheduler may hit any worker and a restart must not leave a ghost lock in RAM. Each lock
has a TTL: if a job crashes without releasing, the next run takes over once it expires.
"""

import logging
import secrets
import time
from datetime import timedelta

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError

from hallyuhub.infrastructure.persistence import CronLockModel, Database, ensure_utc_aware, utc_now

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TTL_MINUTES = 30


def new_request_id(prefix: str = "cron") -> str:
    """Request id like "cron-sync-cast-1718000000000-a1b2c"."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3)[:5]}"


class CronLockService:
    """Named locks with TTL, one row per job."""

    def __init__(self, db: Database, ttl_minutes: int = DEFAULT_LOCK_TTL_MINUTES) -> None:
        self._db = db
        self._ttl = timedelta(minutes=ttl_minutes)

    async def acquire(self, name: str, request_id: str | None = None) -> str | None:
        """Take the lock for `name`.

        Returns:
            The request id holding the lock, or None if another run holds a live lock
        """
        request_id = request_id or new_request_id()
        now = utc_now()
        expires_at = now + self._ttl

        async with self._db.session_scope() as session:
            existing = await session.get(CronLockModel, name)

            if existing is None:
                session.add(
                    CronLockModel(id=name, locked_by=request_id, locked_at=now, expires_at=expires_at)
                )
                try:
                    await session.flush()
                except IntegrityError:
                    # Another worker inserted the row between our read and write
                    logger.warning(f"Cron lock '{name}' was taken concurrently, skipping")
                    await session.rollback()
                    return None
                logger.info(f"Cron lock '{name}' acquired: {request_id}")
                return request_id

            if ensure_utc_aware(existing.expires_at) > now:
                elapsed = int((now - ensure_utc_aware(existing.locked_at)).total_seconds())
                logger.warning(
                    f"Cron lock '{name}' held by {existing.locked_by} ({elapsed}s ago), skipping"
                )
                return None

            logger.warning(f"Cron lock '{name}' expired (previous run crashed?), taking over")
            # Conditional update: only one of two racing takeovers matches the old owner
            taken = await session.execute(
                update(CronLockModel)
                .where(CronLockModel.id == name, CronLockModel.locked_by == existing.locked_by)
                .values(locked_by=request_id, locked_at=now, expires_at=expires_at)
                .execution_options(synchronize_session=False)
            )
            if taken.rowcount != 1:
                return None

        logger.info(f"Cron lock '{name}' acquired: {request_id}")
        return request_id

    async def release(self, name: str, request_id: str) -> bool:
        """Release the lock if `request_id` still holds it."""
        async with self._db.session_scope() as session:
            deleted = await session.execute(
                delete(CronLockModel).where(
                    CronLockModel.id == name, CronLockModel.locked_by == request_id
                )
            )
        released = deleted.rowcount == 1
        if released:
            logger.info(f"Cron lock '{name}' released: {request_id}")
        else:
            logger.warning(f"Cron lock '{name}' no longer held by {request_id}")
        return released
