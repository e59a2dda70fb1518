"""Integration tests for PostgreSQL voter storage.

Requires: PostgreSQL reachable with the POSTGRES_* settings
"""

import asyncio

import pytest

from services.tracker.database import Database
from services.tracker.entities import Candidate, Vote
from services.tracker.exceptions import AlreadyVoted, DuplicateIdentifier, VoterNotFound
from services.tracker.ledger import VoterLedger
from services.tracker.registry import CandidateRegistry

CANDIDATE = Candidate(1, "Alice Rossi", "Party A", "")


@pytest.mark.postgres
@pytest.mark.asyncio
class TestDatabase:
    """Tests against a live database."""

    async def test_create_and_fetch_voter(self, database):
        voter_id = await database.create_voter("V1", "secret1")

        by_id = await database.get_voter(voter_id)
        by_identifier = await database.get_voter_by_identifier("V1")

        assert by_id == by_identifier
        assert by_id.has_voted is False

    async def test_identifier_unique_under_concurrency(self, database):
        results = await asyncio.gather(
            *(database.create_voter("V1", f"s{i}") for i in range(10)),
            return_exceptions=True
        )

        created = [r for r in results if isinstance(r, int)]
        assert len(created) == 1
        assert all(isinstance(r, DuplicateIdentifier) for r in results if not isinstance(r, int))

    async def test_record_vote_sets_flag(self, database):
        voter_id = await database.create_voter("V1", "secret1")

        await database.record_vote(Vote.for_candidate(voter_id, CANDIDATE))

        assert (await database.get_voter(voter_id)).has_voted is True
        assert await database.count_votes(voter_id) == 1

    async def test_record_vote_unknown_voter(self, database):
        with pytest.raises(VoterNotFound):
            await database.record_vote(Vote.for_candidate(12345, CANDIDATE))

    async def test_concurrent_record_vote_without_ledger_lock(self, database):
        voter_id = await database.create_voter("V1", "secret1")
        vote = Vote.for_candidate(voter_id, CANDIDATE)

        results = await asyncio.gather(
            *(database.record_vote(vote) for _ in range(15)),
            return_exceptions=True
        )

        assert sum(1 for r in results if r is None) == 1
        assert all(isinstance(r, AlreadyVoted) for r in results if r is not None)
        assert await database.count_votes(voter_id) == 1

    async def test_votes_survive_a_new_pool(self, database, postgres_settings):
        voter_id = await database.create_voter("V1", "secret1")
        await database.record_vote(Vote.for_candidate(voter_id, CANDIDATE))
        await database.close()

        reopened = Database(postgres_settings)
        await reopened.initialize()
        try:
            assert (await reopened.get_voter(voter_id)).has_voted is True
            assert await reopened.count_votes(voter_id) == 1
        finally:
            await reopened.close()

    async def test_ledger_over_postgres(self, database):
        ledger = VoterLedger(database, CandidateRegistry())
        voter_id = await ledger.register("V1", "secret1")

        results = await asyncio.gather(
            *(ledger.cast_vote(voter_id, 2) for _ in range(10)),
            return_exceptions=True
        )

        assert sum(1 for r in results if isinstance(r, Vote)) == 1
        assert (await ledger.authenticate("V1", "secret1")).has_voted is True
