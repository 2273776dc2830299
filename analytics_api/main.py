"""
Game Analytics Relay - FastAPI application receiving client analytics messages.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List
from fastapi.responses import JSONResponse
from fastapi import FastAPI, HTTPException, Depends, status, Request
from fastapi.security import HTTPBearer
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .config import Settings
from .models import (
    BatchItemResult, BatchResponse, ClientMessage,
    EventResponse, HealthResponse, SessionResponse
)
from .service import build_service

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 500

# Configuration errors are fatal here, before any event is accepted
settings = Settings.from_env()
analytics = build_service(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    analytics.start()
    yield
    analytics.shutdown()


# Rate limiter setup
limiter = Limiter(key_func=get_remote_address)

# FastAPI app
app = FastAPI(
    title="Game Analytics Relay",
    description="Buffers game analytics events per player session and relays them to telemetry backends",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.state.analytics = analytics
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Security
security = HTTPBearer()


def verify_api_key(credentials = Depends(security)):
    """Verify API key."""
    if credentials.credentials != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )
    return credentials.credentials


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Game Analytics Relay", "version": "1.0.0"}


@app.get("/health", response_model=HealthResponse)
def health_check():
    """Report readiness, buffered sessions and backend health."""
    # Sink health checks block on network calls, so this runs in the threadpool
    return HealthResponse(
        status="healthy" if analytics.started else "starting",
        timestamp=datetime.utcnow(),
        version="1.0.0",
        started=analytics.started,
        buffered_sessions=len(analytics.buffer.sessions()),
        sinks=analytics.sink_adapter.health()
    )


@app.post("/events", response_model=EventResponse)
@limiter.limit("600/minute")
async def receive_event(
    request: Request,
    message: ClientMessage,
    api_key: str = Depends(verify_api_key)
):
    """Receive one client message."""
    result = analytics.dispatch(message)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.reason
        )

    return EventResponse(
        success=True,
        action=message.action,
        message=f"{message.action} accepted",
        timestamp=datetime.utcnow()
    )


@app.post("/events/batch", response_model=BatchResponse)
@limiter.limit("60/minute")
async def receive_events_batch(
    request: Request,
    messages: List[ClientMessage],
    api_key: str = Depends(verify_api_key)
):
    """Receive multiple client messages, applied in order."""
    if len(messages) > MAX_BATCH_SIZE:
        raise HTTPException(400, f"Batch size cannot exceed {MAX_BATCH_SIZE} events")
    if len(messages) == 0:
        raise HTTPException(400, "Batch cannot be empty")

    logger.info(f"Batch received with {len(messages)} messages")

    results = []
    for index, message in enumerate(messages):
        result = analytics.dispatch(message)
        results.append(BatchItemResult(
            index=index,
            action=message.action,
            success=result.ok,
            reason=result.reason
        ))

    accepted = sum(1 for item in results if item.success)
    return BatchResponse(
        success=accepted == len(results),
        accepted_events=accepted,
        rejected_events=len(results) - accepted,
        results=results,
        timestamp=datetime.utcnow()
    )


@app.post("/sessions/{player_id}/start", response_model=SessionResponse)
async def session_started(player_id: str, api_key: str = Depends(verify_api_key)):
    """Player joined."""
    analytics.session_started(player_id)
    return SessionResponse(success=True, player_id=player_id, timestamp=datetime.utcnow())


@app.post("/sessions/{player_id}/end", response_model=SessionResponse)
async def session_ending(player_id: str, api_key: str = Depends(verify_api_key)):
    """Player is leaving: flush everything buffered for them."""
    flushed = analytics.session_ending(player_id)
    return SessionResponse(
        success=True,
        player_id=player_id,
        flushed_events=flushed,
        timestamp=datetime.utcnow()
    )


# Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": "HTTPException",
            "message": exc.detail,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
