"""Error taxonomy for the election tracker."""


class TrackerError(Exception):
    """Base class for errors reported back to API callers."""

    status_code = 500
    error = "Internal"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class NotFoundError(TrackerError):
    """A referenced entity does not exist."""

    status_code = 404
    error = "NotFound"


class ConflictError(TrackerError):
    """The request conflicts with current state. Nothing was applied."""

    status_code = 409
    error = "Conflict"


class UnauthorizedError(TrackerError):
    """Credentials were rejected."""

    status_code = 401
    error = "Unauthorized"


class StorageError(TrackerError):
    """Storage failure. The mutation was not applied."""

    status_code = 500
    error = "Internal"


class CandidateNotFound(NotFoundError):
    error = "CandidateNotFound"

    def __init__(self, candidate_id: int):
        super().__init__(f"Candidate {candidate_id} not found")
        self.candidate_id = candidate_id


class VoterNotFound(NotFoundError):
    error = "VoterNotFound"

    def __init__(self, voter_id: int):
        super().__init__(f"Voter {voter_id} not found")
        self.voter_id = voter_id


class DuplicateIdentifier(ConflictError):
    error = "DuplicateIdentifier"

    def __init__(self, identifier: str):
        super().__init__(f"Identifier {identifier!r} is already registered")
        self.identifier = identifier


class AlreadyVoted(ConflictError):
    error = "AlreadyVoted"

    def __init__(self, voter_id: int):
        super().__init__("You have already voted")
        self.voter_id = voter_id


class AlreadyRunning(ConflictError):
    error = "AlreadyRunning"

    def __init__(self):
        super().__init__("Already generating")


class InvalidCredentials(UnauthorizedError):
    error = "InvalidCredentials"

    def __init__(self):
        super().__init__("Invalid voting credentials")
