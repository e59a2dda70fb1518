"""Pydantic models for request/response validation."""
from datetime import datetime
from typing import Dict, Literal, Optional
from pydantic import BaseModel, Field, validator


class CandidateCreate(BaseModel):
    """New candidate request model."""

    name: str = Field(..., description="Candidate display name")
    party: str = Field(..., description="Party name")
    photo: str = Field(default="", description="Photo URL")

    @validator("name", "party")
    def validate_not_blank(cls, v):
        """Name and party cannot be empty."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Alice Rossi",
                "party": "Party A",
                "photo": "https://randomuser.me/api/portraits/women/68.jpg"
            }
        }


class CandidateUpdate(BaseModel):
    """Partial candidate update. Omitted fields are left unchanged."""

    name: Optional[str] = None
    party: Optional[str] = None
    photo: Optional[str] = None

    @validator("name", "party")
    def validate_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("must not be empty")
        return v.strip() if v is not None else v


class CandidateResponse(BaseModel):
    """Candidate as returned by the API."""

    id: int
    name: str
    party: str
    photo: str


class VoterCredentials(BaseModel):
    """Registration and login request model."""

    identifier: str = Field(..., min_length=1, description="Login identifier")
    secret: str = Field(..., min_length=1, description="Login secret")

    class Config:
        json_schema_extra = {
            "example": {
                "identifier": "V1",
                "secret": "secret1"
            }
        }


class VoterRegistered(BaseModel):
    voter_id: int


class LoginResponse(BaseModel):
    """Login response model."""

    voter_id: int
    has_voted: bool


class VoteRequest(BaseModel):
    """Vote submission request model."""

    voter_id: int = Field(..., description="Voter ID returned by registration or login")
    candidate_id: int = Field(..., description="Candidate ID")

    class Config:
        json_schema_extra = {
            "example": {
                "voter_id": 1,
                "candidate_id": 1
            }
        }


class VoteResponse(BaseModel):
    """Vote submission response model."""

    status: str = Field(..., description="Status of the submission")
    message: str = Field(default="Vote recorded successfully", description="Response message")


class GeneratorStarted(BaseModel):
    started: bool = True


class GeneratorStopped(BaseModel):
    stopped: bool = True


class StatsResponse(BaseModel):
    """Stats snapshot, same shape as the websocket message."""

    type: Literal["stats"] = "stats"
    stats: Dict[str, int]


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    observers: int = Field(default=0, description="Connected observer sessions")
    generator_running: bool = Field(default=False)
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict = Field(default_factory=dict, description="Additional error details")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "AlreadyVoted",
                "message": "You have already voted",
                "details": {}
            }
        }
