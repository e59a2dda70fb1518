"""In-memory candidate roster."""
import logging
import threading
from typing import Callable, Dict, List, Optional, Any

from .entities import Candidate
from .exceptions import CandidateNotFound
from .metrics import candidate_mutations
from .stats import compute_stats

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATES = (
    Candidate(1, "Alice Rossi", "Party A", "https://randomuser.me/api/portraits/women/68.jpg"),
    Candidate(2, "Bob Bianchi", "Party B", "https://randomuser.me/api/portraits/men/65.jpg"),
    Candidate(3, "Carla Verdi", "Party C", "https://randomuser.me/api/portraits/women/65.jpg"),
)


class CandidateRegistry:
    """
    Ordered, in-memory set of candidates.

    Every read and write holds one re-entrant lock. Change listeners run
    while the lock is held, so they observe mutations in the order they
    were applied.
    """

    def __init__(self, seed=DEFAULT_CANDIDATES):
        self._lock = threading.RLock()
        self._candidates: List[Candidate] = list(seed)
        self._next_id = max((c.id for c in self._candidates), default=0) + 1
        self._listeners: List[Callable[[], None]] = []

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback fired after every mutation."""
        self._listeners.append(callback)

    def list(self) -> List[Candidate]:
        """All candidates in insertion order."""
        with self._lock:
            return list(self._candidates)

    def get(self, candidate_id: int) -> Optional[Candidate]:
        with self._lock:
            for candidate in self._candidates:
                if candidate.id == candidate_id:
                    return candidate
            return None

    def stats(self) -> Dict[str, int]:
        """Party counts for the current roster."""
        with self._lock:
            return compute_stats(self._candidates)

    def add(self, name: str, party: str, photo: str) -> Candidate:
        """
        Append a new candidate.

        Args:
            name: Display name
            party: Party name
            photo: Photo URL

        Returns:
            The created candidate with its assigned id
        """
        with self._lock:
            candidate = Candidate(self._next_id, name, party, photo)
            self._next_id += 1
            self._candidates.append(candidate)
            logger.info(f"Candidate added: id={candidate.id}, party={candidate.party}")
            candidate_mutations.labels(operation="add").inc()
            self._notify()
            return candidate

    def update(self, candidate_id: int, **fields: Any) -> Candidate:
        """
        Merge the given fields into an existing candidate.

        Unspecified fields keep their value; the id cannot change.

        Raises:
            CandidateNotFound: If no candidate has this id
        """
        with self._lock:
            for index, candidate in enumerate(self._candidates):
                if candidate.id == candidate_id:
                    updated = candidate.merged(fields)
                    self._candidates[index] = updated
                    logger.info(f"Candidate updated: id={candidate_id}")
                    candidate_mutations.labels(operation="update").inc()
                    self._notify()
                    return updated
            raise CandidateNotFound(candidate_id)

    def remove(self, candidate_id: int) -> None:
        """Remove a candidate. Removing an unknown id is not an error."""
        with self._lock:
            before = len(self._candidates)
            self._candidates = [c for c in self._candidates if c.id != candidate_id]
            if len(self._candidates) != before:
                logger.info(f"Candidate removed: id={candidate_id}")
            candidate_mutations.labels(operation="remove").inc()
            self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception as e:
                logger.error(f"Candidate listener failed: {e}", exc_info=True)
