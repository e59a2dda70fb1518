"""Pytest fixtures for PostgreSQL integration tests.

These tests talk to a real PostgreSQL server configured through the usual
POSTGRES_* environment variables and are skipped when it is unreachable.
"""

import os

import pytest

from services.tracker.config import Settings
from services.tracker.database import Database


@pytest.fixture
def postgres_settings() -> Settings:
    return Settings(
        POSTGRES_HOST=os.getenv("POSTGRES_HOST", "localhost"),
        POSTGRES_PORT=int(os.getenv("POSTGRES_PORT", "5432")),
        POSTGRES_DB=os.getenv("POSTGRES_DB", "election_db"),
        POSTGRES_USER=os.getenv("POSTGRES_USER", "election_user"),
        POSTGRES_PASSWORD=os.getenv("POSTGRES_PASSWORD", "election_pass"),
        POSTGRES_POOL_MIN_SIZE=1,
        POSTGRES_POOL_MAX_SIZE=20,
    )


@pytest.fixture
async def database(postgres_settings: Settings):
    """Initialized Database with empty voter and vote tables."""
    db = Database(postgres_settings)
    try:
        await db.initialize()
    except Exception:
        pytest.skip("PostgreSQL not available")

    async with db.pool.acquire() as conn:
        await conn.execute("TRUNCATE TABLE votes, voters RESTART IDENTITY CASCADE")

    yield db

    await db.close()
