"""PostgreSQL storage for voters and votes."""
import asyncio
import asyncpg
from typing import Optional
import logging

from .config import Settings
from .entities import Voter, Vote
from .exceptions import AlreadyVoted, DuplicateIdentifier, StorageError, VoterNotFound

logger = logging.getLogger(__name__)

# Failures that leave a storage operation unapplied: server errors, dead
# connections or pools, unreachable hosts, command_timeout expiry.
STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS voters (
        id SERIAL PRIMARY KEY,
        identifier TEXT NOT NULL UNIQUE,
        secret TEXT NOT NULL,
        has_voted BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE TABLE IF NOT EXISTS votes (
        id SERIAL PRIMARY KEY,
        voter_id INTEGER NOT NULL UNIQUE REFERENCES voters(id),
        candidate_id INTEGER NOT NULL,
        candidate_name TEXT NOT NULL,
        candidate_party TEXT NOT NULL,
        cast_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
"""


class Database:
    """Async PostgreSQL database manager."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """Initialize connection pool and create the schema."""
        try:
            self.pool = await asyncpg.create_pool(
                self.settings.postgres_dsn,
                min_size=self.settings.POSTGRES_POOL_MIN_SIZE,
                max_size=self.settings.POSTGRES_POOL_MAX_SIZE,
                command_timeout=self.settings.POSTGRES_COMMAND_TIMEOUT
            )
            logger.info("PostgreSQL connection pool initialized successfully")

            async with self.pool.acquire() as conn:
                await conn.execute(SCHEMA)
                logger.info("PostgreSQL schema verified")

        except Exception as e:
            logger.error(f"Failed to initialize PostgreSQL connection pool: {e}")
            raise

    async def create_voter(self, identifier: str, secret: str) -> int:
        """
        Insert a new voter.

        Args:
            identifier: Unique login identifier
            secret: Login secret

        Returns:
            The new voter id

        Raises:
            DuplicateIdentifier: If the identifier is already registered
        """
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    """
                    INSERT INTO voters (identifier, secret)
                    VALUES ($1, $2)
                    RETURNING id
                    """,
                    identifier, secret
                )
        except asyncpg.UniqueViolationError:
            raise DuplicateIdentifier(identifier)
        except STORAGE_ERRORS as e:
            logger.error(f"Error creating voter: {e}")
            raise StorageError()

    async def get_voter(self, voter_id: int) -> Optional[Voter]:
        """Fetch a voter by id, or None."""
        return await self._fetch_voter(
            "SELECT id, identifier, secret, has_voted FROM voters WHERE id = $1",
            voter_id
        )

    async def get_voter_by_identifier(self, identifier: str) -> Optional[Voter]:
        """Fetch a voter by login identifier, or None."""
        return await self._fetch_voter(
            "SELECT id, identifier, secret, has_voted FROM voters WHERE identifier = $1",
            identifier
        )

    async def _fetch_voter(self, query: str, value) -> Optional[Voter]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, value)
                return Voter.from_record(row) if row else None
        except STORAGE_ERRORS as e:
            logger.error(f"Error fetching voter: {e}")
            raise StorageError()

    async def record_vote(self, vote: Vote) -> None:
        """
        Insert a vote and mark its voter as having voted, in one transaction.

        The voter row is locked for the duration, so concurrent calls for the
        same voter are serialized by PostgreSQL as well.

        Raises:
            VoterNotFound: If the voter row does not exist
            AlreadyVoted: If the voter has already voted
            StorageError: On any other database failure (nothing is applied)
        """
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        "SELECT has_voted FROM voters WHERE id = $1 FOR UPDATE",
                        vote.voter_id
                    )
                    if row is None:
                        raise VoterNotFound(vote.voter_id)
                    if row["has_voted"]:
                        raise AlreadyVoted(vote.voter_id)

                    await conn.execute(
                        """
                        INSERT INTO votes
                        (voter_id, candidate_id, candidate_name, candidate_party)
                        VALUES ($1, $2, $3, $4)
                        """,
                        vote.voter_id, vote.candidate_id,
                        vote.candidate_name, vote.candidate_party
                    )
                    await conn.execute(
                        "UPDATE voters SET has_voted = TRUE WHERE id = $1",
                        vote.voter_id
                    )
        except asyncpg.UniqueViolationError:
            raise AlreadyVoted(vote.voter_id)
        except STORAGE_ERRORS as e:
            logger.error(f"Error recording vote for voter {vote.voter_id}: {e}")
            raise StorageError("Failed to record vote")

    async def count_votes(self, voter_id: int) -> int:
        """Number of vote records held for a voter."""
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT COUNT(*) FROM votes WHERE voter_id = $1",
                    voter_id
                )
        except STORAGE_ERRORS as e:
            logger.error(f"Error counting votes for voter {voter_id}: {e}")
            raise StorageError()

    async def check_health(self) -> bool:
        """Check database connection health."""
        try:
            if not self.pool:
                return False
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool."""
        try:
            if self.pool:
                await self.pool.close()
                logger.info("PostgreSQL connection pool closed successfully")
        except Exception as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")
