"""
Domain entities for the election tracker.

This module contains:
- Candidate: roster entry owned by the candidate registry
- Voter: registered voter owned by the voter ledger
- Vote: append-only record linking a voter to a candidate
"""

from dataclasses import dataclass, asdict, field, replace
from datetime import datetime
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class Candidate:
    """
    A candidate on the live roster.

    Attributes:
        id: Registry-assigned identifier, never reused within a process
        name: Display name
        party: Party name, the grouping key for stats
        photo: Photo URL or reference
    """
    id: int
    name: str
    party: str
    photo: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def merged(self, fields: Dict[str, Any]) -> 'Candidate':
        """Return a copy with the given editable fields replaced."""
        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
        return replace(self, **changes)


EDITABLE_FIELDS = ('name', 'party', 'photo')


@dataclass
class Voter:
    """
    A registered voter.

    Attributes:
        id: Storage-assigned identifier
        identifier: Unique login identifier
        secret: Login secret, compared as given
        has_voted: Set exactly once, together with the vote insertion
    """
    id: int
    identifier: str
    secret: str = field(repr=False)
    has_voted: bool = False

    @classmethod
    def from_record(cls, record) -> 'Voter':
        """Create a Voter from a database row."""
        return cls(
            id=record["id"],
            identifier=record["identifier"],
            secret=record["secret"],
            has_voted=record["has_voted"],
        )


@dataclass(frozen=True)
class Vote:
    """
    A cast vote.

    Candidate name and party are copied at cast time, so the record stays
    meaningful after the candidate leaves the roster.
    """
    voter_id: int
    candidate_id: int
    candidate_name: str
    candidate_party: str
    cast_at: Optional[datetime] = None

    @classmethod
    def for_candidate(cls, voter_id: int, candidate: Candidate) -> 'Vote':
        return cls(
            voter_id=voter_id,
            candidate_id=candidate.id,
            candidate_name=candidate.name,
            candidate_party=candidate.party,
        )
