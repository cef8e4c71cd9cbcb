import asyncio
import os

import pytest

from dsptracker.core import database
from dsptracker.models.database import Base


@pytest.fixture
def database_url(tmp_path):
    """Postgres when TEST_DATABASE_URL is set, otherwise a throwaway SQLite file."""
    url = os.environ.get("TEST_DATABASE_URL")
    if url:
        return url
    return f"sqlite+aiosqlite:///{tmp_path / 'dsptracker.db'}"


@pytest.fixture
def run_db(database_url):
    """Run an async scenario against a freshly created schema.

    The engine is started and disposed inside the same asyncio.run() call so
    connections never outlive their event loop.
    """

    def _run(scenario):
        async def _main():
            await database.start_db(database_url)
            try:
                async with database.engine.begin() as conn:  # type: ignore[union-attr]
                    await conn.run_sync(Base.metadata.drop_all)
                    await conn.run_sync(Base.metadata.create_all)
                return await scenario()
            finally:
                await database.shutdown_db()

        return asyncio.run(_main())

    return _run
