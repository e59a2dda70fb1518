"""Pytest fixtures for the election tracker tests.

Component tests run against an in-memory stand-in for the PostgreSQL
storage that honours the same contract: unique identifiers, and vote
insertion plus has_voted update applied together or not at all.
"""

import asyncio
from dataclasses import replace
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from services.tracker.config import Settings
from services.tracker.entities import Voter, Vote
from services.tracker.exceptions import (
    AlreadyVoted,
    DuplicateIdentifier,
    StorageError,
    VoterNotFound,
)
from services.tracker.main import create_app
from services.tracker.registry import CandidateRegistry


class InMemoryDatabase:
    """Voter storage kept in dictionaries."""

    def __init__(self):
        self.voters: Dict[int, Voter] = {}
        self.votes: List[Vote] = []
        self.fail_next_vote = False
        self.initialized = False
        self.closed = False

    async def initialize(self):
        self.initialized = True

    async def close(self):
        self.closed = True

    async def check_health(self) -> bool:
        return self.initialized and not self.closed

    async def create_voter(self, identifier: str, secret: str) -> int:
        await asyncio.sleep(0)
        if any(v.identifier == identifier for v in self.voters.values()):
            raise DuplicateIdentifier(identifier)
        voter_id = len(self.voters) + 1
        self.voters[voter_id] = Voter(voter_id, identifier, secret)
        return voter_id

    async def get_voter(self, voter_id: int) -> Optional[Voter]:
        await asyncio.sleep(0)
        voter = self.voters.get(voter_id)
        return replace(voter) if voter else None

    async def get_voter_by_identifier(self, identifier: str) -> Optional[Voter]:
        await asyncio.sleep(0)
        for voter in self.voters.values():
            if voter.identifier == identifier:
                return replace(voter)
        return None

    async def record_vote(self, vote: Vote) -> None:
        await asyncio.sleep(0)
        voter = self.voters.get(vote.voter_id)
        if voter is None:
            raise VoterNotFound(vote.voter_id)
        if voter.has_voted:
            raise AlreadyVoted(vote.voter_id)
        if self.fail_next_vote:
            self.fail_next_vote = False
            raise StorageError("Failed to record vote")
        self.votes.append(vote)
        voter.has_voted = True

    async def count_votes(self, voter_id: int) -> int:
        return sum(1 for vote in self.votes if vote.voter_id == voter_id)


class FakeWebSocket:
    """Records what the broadcaster sends."""

    def __init__(self):
        self.sent: List[dict] = []
        self.closed_with: Optional[int] = None

    async def send_json(self, message: dict):
        self.sent.append(message)

    async def close(self, code: int = 1000):
        self.closed_with = code


class StalledWebSocket(FakeWebSocket):
    """An observer that never finishes a send."""

    async def send_json(self, message: dict):
        await asyncio.Event().wait()


class BrokenWebSocket(FakeWebSocket):
    """An observer whose connection is already gone."""

    async def send_json(self, message: dict):
        raise RuntimeError("Cannot call send once a close message has been sent")


@pytest.fixture
def fake_database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def registry() -> CandidateRegistry:
    """Registry seeded with the default three candidates."""
    return CandidateRegistry()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        GENERATOR_INTERVAL_SECONDS=0.02,
        RATE_LIMIT="1000/second",
        RATE_LIMIT_STORAGE_URI="memory://",
    )


@pytest.fixture
def app(settings, fake_database, registry):
    return create_app(settings=settings, database=fake_database, registry=registry)


@pytest.fixture
def client(app):
    """Test client with the app lifespan running."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def eventually():
    """Return a coroutine function that polls a predicate until it holds.

    Fails the test if the predicate is still false after the timeout.
    """
    async def _eventually(predicate, timeout: float = 2.0, interval: float = 0.01):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(interval)

    return _eventually


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "postgres: mark test as requiring a reachable PostgreSQL database"
    )
