"""
FastAPI relay for the realtime WebRTC client.

The relay holds the OpenAI API key and exposes the token broker endpoint that
clients call before negotiating their peer connection. Session attempts are
tracked per client IP in a rolling window so a misbehaving client is turned
away locally before it can trip the upstream rate limit.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from realtime_webrtc.client.backoff import AttemptWindow
from realtime_webrtc.config.constants import SESSION_ATTEMPT_LIMIT, SESSION_ATTEMPT_WINDOW
from realtime_webrtc.config.logging_config import configure_logging
from realtime_webrtc.config.variants import get_variant
from realtime_webrtc.services.openai_sessions import (
    UpstreamError,
    build_session_request,
    create_realtime_session,
)

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# Configure logging
logger = configure_logging()

PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")
ATTEMPT_LIMIT = int(os.getenv("SESSION_ATTEMPT_LIMIT", str(SESSION_ATTEMPT_LIMIT)))
ATTEMPT_WINDOW = float(os.getenv("SESSION_ATTEMPT_WINDOW", str(SESSION_ATTEMPT_WINDOW)))

variant = get_variant(os.getenv("REALTIME_API_VARIANT"))

app = FastAPI(
    title="Realtime WebRTC Relay",
    description="Ephemeral session broker for OpenAI Realtime API WebRTC clients",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Session attempts per client IP
session_attempts = AttemptWindow(window=ATTEMPT_WINDOW)


class SessionRequest(BaseModel):
    """Token broker request body. Unknown session fields are passed through."""

    model_config = ConfigDict(extra="allow")

    voice: Optional[str] = None
    turn_detection: Optional[Dict[str, Any]] = None
    input_audio_transcription: Optional[Dict[str, Any]] = None
    input_audio_noise_reduction: Optional[Dict[str, Any]] = None
    include: Optional[list] = None
    tools: Optional[list] = None


def error_response(status_code: int, error: str, details: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


def client_identity(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@app.post("/session")
async def create_session(body: SessionRequest, request: Request):
    """Mint an ephemeral Realtime session for the calling client.

    Returns:
        dict: The upstream session, including ``client_secret.value`` and
        ``client_secret.expires_at``.
    """
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        logger.error("OPENAI_API_KEY environment variable not set")
        return error_response(500, "Server configuration error", "OpenAI API key not configured")

    identity = client_identity(request)
    attempts = session_attempts.record(identity, "requested")
    if attempts > ATTEMPT_LIMIT:
        logger.warning(f"Session attempt limit exceeded for {identity} ({attempts} in window)")
        return error_response(
            429,
            "Too many session requests",
            f"Limit is {ATTEMPT_LIMIT} per {ATTEMPT_WINDOW:.0f} seconds. Please wait before reconnecting.",
        )

    payload = build_session_request(variant, body.model_dump(exclude_none=True))
    logger.info(f"Creating session for {identity} with model {payload['model']}")

    try:
        return await create_realtime_session(api_key, payload)
    except UpstreamError as e:
        if e.status == 429:
            session_attempts.record(identity, "rate_limited")
            return error_response(429, "OpenAI rate limit", e.body)
        return error_response(
            502,
            "Failed to create session",
            {"upstream_status": e.status, "body": e.body},
        )


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status, whether the API key is configured, the active variant
        and model, and the client identities currently tracked.
    """
    return {
        "status": "healthy",
        "openai_api_key_configured": bool(os.getenv("OPENAI_API_KEY")),
        "variant": variant.name,
        "model": variant.model,
        "tracked_clients": len(session_attempts.identities()),
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API."""
    return {
        "name": "Realtime WebRTC Relay",
        "description": "Ephemeral session broker for OpenAI Realtime API WebRTC clients",
        "version": "1.0.0",
        "endpoints": {
            "/session": "Create an ephemeral Realtime session (POST)",
            "/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT, http="h11")
