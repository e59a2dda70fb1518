"""Voter ledger: registration, login and the one-vote-per-voter rule."""
import asyncio
import hmac
import logging
from typing import Callable, List

from .entities import Voter, Vote
from .exceptions import (
    AlreadyVoted,
    CandidateNotFound,
    InvalidCredentials,
    TrackerError,
    VoterNotFound,
)
from .metrics import votes_cast, vote_errors
from .registry import CandidateRegistry

logger = logging.getLogger(__name__)


class VoterLedger:
    """
    Voters and votes on top of persistent storage.

    Vote casting holds a single ledger-wide lock around the
    check-then-record sequence; storage re-checks inside its own
    transaction.
    """

    def __init__(self, database, registry: CandidateRegistry):
        self.database = database
        self.registry = registry
        self._vote_lock = asyncio.Lock()
        self._listeners: List[Callable[[], None]] = []

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback fired after every recorded vote."""
        self._listeners.append(callback)

    async def register(self, identifier: str, secret: str) -> int:
        """
        Register a voter.

        Returns:
            The new voter id

        Raises:
            DuplicateIdentifier: If the identifier is taken
        """
        voter_id = await self.database.create_voter(identifier, secret)
        logger.info(f"Voter registered: id={voter_id}")
        return voter_id

    async def authenticate(self, identifier: str, secret: str) -> Voter:
        """Return the voter whose credentials match exactly."""
        voter = await self.database.get_voter_by_identifier(identifier)
        if voter is None or not hmac.compare_digest(voter.secret.encode(), secret.encode()):
            logger.info("Login rejected")
            raise InvalidCredentials()
        return voter

    async def get_voter(self, voter_id: int) -> Voter:
        voter = await self.database.get_voter(voter_id)
        if voter is None:
            raise VoterNotFound(voter_id)
        return voter

    async def votes_for(self, voter_id: int) -> int:
        return await self.database.count_votes(voter_id)

    async def cast_vote(self, voter_id: int, candidate_id: int) -> Vote:
        """
        Record a vote for a candidate.

        Args:
            voter_id: Voting voter
            candidate_id: Candidate currently on the roster

        Returns:
            The recorded vote

        Raises:
            VoterNotFound: Unknown voter
            AlreadyVoted: Voter has already cast a vote
            CandidateNotFound: Candidate is not on the roster
            StorageError: Storage failure, nothing applied
        """
        try:
            async with self._vote_lock:
                voter = await self.get_voter(voter_id)
                if voter.has_voted:
                    raise AlreadyVoted(voter_id)

                candidate = self.registry.get(candidate_id)
                if candidate is None:
                    raise CandidateNotFound(candidate_id)

                vote = Vote.for_candidate(voter_id, candidate)
                await self.database.record_vote(vote)
        except TrackerError as e:
            vote_errors.labels(error_type=e.error).inc()
            raise

        votes_cast.inc()
        logger.info(f"Vote recorded: voter={voter_id}, candidate={candidate_id}")
        self._notify()
        return vote

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception as e:
                logger.error(f"Vote listener failed: {e}", exc_info=True)
