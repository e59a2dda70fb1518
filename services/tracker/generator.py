"""Synthetic candidate generator for demos."""
import asyncio
import logging
import random
from typing import Optional

from .entities import Candidate
from .exceptions import AlreadyRunning
from .metrics import generator_running
from .registry import CandidateRegistry

logger = logging.getLogger(__name__)

FIRST_NAMES = ["Alex", "Sam", "Chris", "Jamie", "Taylor", "Jordan", "Morgan", "Casey"]
LAST_NAMES = ["Smith", "Johnson", "Lee", "Brown", "Garcia", "Martinez", "Davis", "Lopez"]
PARTIES = ["Party A", "Party B", "Party C", "Party D", "Party E"]


def random_name(rng: random.Random) -> str:
    """Generate a random 'First Last' name."""
    return f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"


def random_party(rng: random.Random) -> str:
    return rng.choice(PARTIES)


def random_photo(rng: random.Random) -> str:
    """Generate a random portrait URL."""
    gender = "men" if rng.random() > 0.5 else "women"
    return f"https://randomuser.me/api/portraits/{gender}/{rng.randrange(99)}.jpg"


class CandidateGenerator:
    """
    Adds a random candidate to the registry at a fixed interval.

    Two states: idle and running. Ticks go through CandidateRegistry.add,
    so each one triggers the normal broadcast path.
    """

    def __init__(self, registry: CandidateRegistry, interval: float = 0.5,
                 rng: Optional[random.Random] = None):
        self.registry = registry
        self.interval = interval
        self.rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        """
        Begin generating candidates.

        Raises:
            AlreadyRunning: If the generator is already running
        """
        if self._task is not None:
            raise AlreadyRunning()
        self._task = asyncio.create_task(self._run())
        generator_running.set(1)
        logger.info(f"Candidate generator started (interval={self.interval}s)")

    async def stop(self) -> None:
        """Stop generating. No-op when idle."""
        task, self._task = self._task, None
        if task is None:
            return
        generator_running.set(0)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Candidate generator stopped")

    def tick(self) -> Candidate:
        """Add one random candidate."""
        return self.registry.add(
            random_name(self.rng),
            random_party(self.rng),
            random_photo(self.rng),
        )

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Generator tick failed: {e}", exc_info=True)
