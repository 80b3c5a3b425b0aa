"""Row builders for tests."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from functools import partial
from typing import Any, TypeVar

from fastapi.testclient import TestClient

from hallyuhub.infrastructure.persistence import ArtistModel, Database, ProductionModel

T = TypeVar("T")

CRON_SECRET = "test-cron-secret"


def days_ago(days: int) -> datetime:
    return datetime.now(UTC) - timedelta(days=days)


async def add_artist(db: Database, name: str, **fields: Any) -> str:
    """Insert an artist and return its id."""
    async with db.session_scope() as session:
        artist = ArtistModel(name_romanized=name, **fields)
        session.add(artist)
        await session.flush()
        return artist.id


async def add_production(db: Database, title: str, **fields: Any) -> str:
    """Insert a production (a series unless `type` is given) and return its id."""
    fields.setdefault("type", "SERIE")
    async with db.session_scope() as session:
        production = ProductionModel(title_pt=title, **fields)
        session.add(production)
        await session.flush()
        return production.id


async def add_rows(db: Database, *rows: Any) -> None:
    async with db.session_scope() as session:
        session.add_all(rows)


# Hey future me - TestClient runs the app (and its engine) on its own event loop thread.
# Seed data through the client's portal so the inserts run on that same loop.
def seed(client: TestClient, factory: Callable[..., Awaitable[T]], *args: Any, **fields: Any) -> T:
    """Run an async factory against the app's database from a sync test."""
    assert client.portal is not None, "use the client inside its `with` block"
    return client.portal.call(partial(factory, client.app.state.db, *args, **fields))
