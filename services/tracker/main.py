"""
FastAPI application for the live election tracker.

Serves the candidate roster, voter registration/login and vote casting over
REST, and pushes per-party stats to observers over a WebSocket.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, Request, WebSocket, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .broadcaster import Broadcaster
from .config import Settings, settings as default_settings
from .database import Database
from .exceptions import CandidateNotFound, NotFoundError, TrackerError
from .generator import CandidateGenerator
from .ledger import VoterLedger
from .metrics import request_duration
from .models import (
    CandidateCreate,
    CandidateUpdate,
    CandidateResponse,
    VoterCredentials,
    VoterRegistered,
    LoginResponse,
    VoteRequest,
    VoteResponse,
    GeneratorStarted,
    GeneratorStopped,
    StatsResponse,
    HealthResponse,
    ErrorResponse,
)
from .registry import CandidateRegistry
from .stats import stats_message

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if default_settings.DEBUG else getattr(logging, default_settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Referenced entity not found"},
    409: {"model": ErrorResponse, "description": "Conflicts with current state"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
}


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """Render domain errors as ErrorResponse bodies."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.error, message=exc.message).model_dump()
    )


def create_app(
    settings: Optional[Settings] = None,
    database=None,
    registry: Optional[CandidateRegistry] = None,
    generator_rng=None,
) -> FastAPI:
    """
    Build the application and its components.

    Args:
        settings: Settings to use (defaults to environment settings)
        database: Voter storage (defaults to a PostgreSQL Database)
        registry: Candidate roster (defaults to the seeded roster)
        generator_rng: random.Random for the synthetic generator

    Returns:
        Configured FastAPI application; components are on app.state
    """
    settings = settings or default_settings
    database = database if database is not None else Database(settings)
    registry = registry or CandidateRegistry()
    ledger = VoterLedger(database, registry)
    broadcaster = Broadcaster(registry.stats, max_queue=settings.BROADCAST_QUEUE_SIZE)
    generator = CandidateGenerator(
        registry,
        interval=settings.GENERATOR_INTERVAL_SECONDS,
        rng=generator_rng
    )

    registry.add_listener(broadcaster.on_mutation)
    ledger.add_listener(broadcaster.on_mutation)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        logger.info(f"Starting {settings.SERVICE_NAME} service...")

        try:
            await database.initialize()
            logger.info(
                f"{settings.SERVICE_NAME} started successfully "
                f"({len(registry.list())} candidates seeded)"
            )
        except Exception as e:
            logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
            raise

        yield

        logger.info(f"Shutting down {settings.SERVICE_NAME} service...")

        try:
            await generator.stop()
            await broadcaster.close()
            await database.close()
            logger.info(f"{settings.SERVICE_NAME} shut down successfully")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    app = FastAPI(
        title="Live Election Tracker",
        description="Candidate roster, one-vote-per-voter ledger and live party stats",
        version=settings.API_VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.database = database
    app.state.registry = registry
    app.state.ledger = ledger
    app.state.broadcaster = broadcaster
    app.state.generator = generator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    limiter = Limiter(key_func=get_remote_address, storage_uri=settings.rate_limit_storage_uri)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(TrackerError, tracker_error_handler)

    @app.middleware("http")
    async def prometheus_middleware(request: Request, call_next):
        """Middleware to track request duration."""
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        request_duration.labels(
            method=request.method,
            endpoint=getattr(route, "path", request.url.path),
            status=response.status_code
        ).observe(time.perf_counter() - start)
        return response

    # ═══════════════════════════════════════════════════════════════════
    # CANDIDATE ENDPOINTS
    # ═══════════════════════════════════════════════════════════════════

    @app.get("/api/candidates", response_model=List[CandidateResponse])
    async def list_candidates():
        """List all candidates in insertion order."""
        return [c.to_dict() for c in registry.list()]

    @app.post(
        "/api/candidates",
        response_model=CandidateResponse,
        status_code=status.HTTP_201_CREATED
    )
    async def add_candidate(candidate: CandidateCreate):
        """
        Add a candidate.

        - **name**: Display name
        - **party**: Party name
        - **photo**: Photo URL
        """
        created = registry.add(candidate.name, candidate.party, candidate.photo)
        return created.to_dict()

    @app.put(
        "/api/candidates/{candidate_id}",
        response_model=CandidateResponse,
        responses={404: ERROR_RESPONSES[404]}
    )
    async def update_candidate(candidate_id: int, changes: CandidateUpdate):
        """
        Merge the provided fields into an existing candidate.

        An unknown id is reported as a plain NotFound error.
        """
        try:
            updated = registry.update(candidate_id, **changes.model_dump(exclude_unset=True))
        except CandidateNotFound as e:
            raise NotFoundError(e.message) from e
        return updated.to_dict()

    @app.delete("/api/candidates/{candidate_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def remove_candidate(candidate_id: int):
        """Remove a candidate. Unknown ids are ignored."""
        registry.remove(candidate_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post(
        "/api/candidates/generate",
        response_model=GeneratorStarted,
        responses={409: ERROR_RESPONSES[409]}
    )
    async def start_generator():
        """Start adding a random candidate every GENERATOR_INTERVAL_SECONDS."""
        generator.start()
        return GeneratorStarted()

    @app.post("/api/candidates/stop", response_model=GeneratorStopped)
    async def stop_generator():
        """Stop the random candidate generator."""
        await generator.stop()
        return GeneratorStopped()

    # ═══════════════════════════════════════════════════════════════════
    # VOTER ENDPOINTS
    # ═══════════════════════════════════════════════════════════════════

    @app.post(
        "/api/voters",
        response_model=VoterRegistered,
        status_code=status.HTTP_201_CREATED,
        responses={409: ERROR_RESPONSES[409], 500: ERROR_RESPONSES[500]}
    )
    @limiter.limit(settings.RATE_LIMIT)
    async def register_voter(request: Request, credentials: VoterCredentials):
        """Register a voter. Identifiers are unique."""
        voter_id = await ledger.register(credentials.identifier, credentials.secret)
        return VoterRegistered(voter_id=voter_id)

    @app.post(
        "/api/login",
        response_model=LoginResponse,
        responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}}
    )
    @limiter.limit(settings.RATE_LIMIT)
    async def login(request: Request, credentials: VoterCredentials):
        """Check credentials and return the voter id and voting status."""
        voter = await ledger.authenticate(credentials.identifier, credentials.secret)
        return LoginResponse(voter_id=voter.id, has_voted=voter.has_voted)

    @app.get(
        "/api/voters/{voter_id}",
        response_model=LoginResponse,
        responses={404: ERROR_RESPONSES[404]}
    )
    async def get_voter(voter_id: int):
        """Voting status of a voter."""
        voter = await ledger.get_voter(voter_id)
        return LoginResponse(voter_id=voter.id, has_voted=voter.has_voted)

    @app.post(
        "/api/votes",
        response_model=VoteResponse,
        status_code=status.HTTP_201_CREATED,
        responses=ERROR_RESPONSES
    )
    @limiter.limit(settings.RATE_LIMIT)
    async def cast_vote(request: Request, vote: VoteRequest):
        """
        Cast a vote.

        - **voter_id**: Registered voter
        - **candidate_id**: Candidate currently on the roster

        Each voter can vote once; the vote is stored before this returns.
        """
        await ledger.cast_vote(vote.voter_id, vote.candidate_id)
        return VoteResponse(status="accepted")

    # ═══════════════════════════════════════════════════════════════════
    # STATS, HEALTH, METRICS
    # ═══════════════════════════════════════════════════════════════════

    @app.get("/api/stats", response_model=StatsResponse)
    async def get_stats():
        """Current stats snapshot."""
        return stats_message(registry.stats())

    @app.websocket("/ws")
    async def stats_stream(websocket: WebSocket):
        """Push a stats snapshot on connect and after every mutation."""
        await websocket.accept()
        session = broadcaster.connect(websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            await broadcaster.disconnect(session)

    @app.get(
        "/api/health",
        response_model=HealthResponse,
        responses={503: {"model": HealthResponse, "description": "Service unhealthy"}}
    )
    async def health_check():
        """Check health of the service and its database."""
        services = {}
        try:
            postgres_healthy = await database.check_health()
            services["postgresql"] = "connected" if postgres_healthy else "disconnected"
        except Exception as e:
            logger.error(f"PostgreSQL health check error: {e}")
            services["postgresql"] = "error"

        all_healthy = all(state == "connected" for state in services.values())

        response = HealthResponse(
            status="healthy" if all_healthy else "unhealthy",
            services=services,
            observers=broadcaster.session_count,
            generator_running=generator.is_running,
            timestamp=datetime.utcnow()
        )
        return JSONResponse(
            status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json")
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.API_VERSION,
            "status": "running",
            "endpoints": {
                "candidates": "/api/candidates",
                "generate": "/api/candidates/generate",
                "stop": "/api/candidates/stop",
                "register": "/api/voters",
                "login": "/api/login",
                "vote": "/api/votes",
                "stats": "/api/stats",
                "stream": "/ws",
                "health": "/api/health",
                "metrics": "/metrics"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.tracker.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
        log_level="info"
    )
