"""
Live election tracker service.

This package contains the vote-and-broadcast service:
- Candidate registry (in-memory roster)
- Voter ledger (PostgreSQL-backed, one vote per voter)
- Stats aggregation and real-time WebSocket fan-out
- Synthetic candidate generator for demos
"""

from .entities import Candidate, Voter, Vote
from .stats import compute_stats, stats_message

__all__ = [
    'Candidate',
    'Voter',
    'Vote',
    'compute_stats',
    'stats_message',
]

__version__ = '1.0.0'
