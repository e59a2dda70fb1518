"""Stats aggregation: candidates grouped by party."""
from collections import Counter
from typing import Dict, Iterable

from .entities import Candidate


def compute_stats(candidates: Iterable[Candidate]) -> Dict[str, int]:
    """
    Count candidates per party.

    Args:
        candidates: Current roster

    Returns:
        Mapping of party name to number of candidates, in order of first appearance
    """
    return dict(Counter(candidate.party for candidate in candidates))


def stats_message(stats: Dict[str, int]) -> Dict:
    """Wrap a stats snapshot in the tagged message pushed to observers."""
    return {"type": "stats", "stats": dict(stats)}
