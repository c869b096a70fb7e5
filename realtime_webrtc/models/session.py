"""
Session state owned by the connection manager.

The session is created on connect and reset on disconnect. The event
dispatcher works on copies of ``SessionState`` and never mutates the
instance it was given.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from realtime_webrtc.models.settings import Settings
from realtime_webrtc.models.transcript import TranscriptBuffer, TranscriptSide


class ConnectionState(str, Enum):
    """Lifecycle states of the connection manager."""
    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_ANSWER = "awaiting_answer"
    CONNECTED = "connected"
    VOICE_ACTIVE = "voice_active"
    VOICE_INACTIVE = "voice_inactive"
    DISCONNECTING = "disconnecting"
    FAILED = "failed"


CONNECTED_STATES = frozenset({
    ConnectionState.CONNECTED,
    ConnectionState.VOICE_ACTIVE,
    ConnectionState.VOICE_INACTIVE,
})


class ActivityStatus(str, Enum):
    """Conversation activity shown to the user while connected."""
    IDLE = "idle"
    LISTENING = "listening"
    USER_SPEAKING = "user_speaking"
    PROCESSING = "processing"
    AI_THINKING = "ai_thinking"
    AI_RESPONDING = "ai_responding"
    RATE_LIMITED = "rate_limited"


class SessionState(BaseModel):
    """Per-connection conversation state."""

    connection_state: ConnectionState = ConnectionState.IDLE
    status: ActivityStatus = ActivityStatus.IDLE
    response_id: Optional[str] = None
    voice_active: bool = False
    pending_tool_output: bool = False
    settings: Settings = Field(default_factory=Settings)
    user_transcript: TranscriptBuffer = Field(
        default_factory=lambda: TranscriptBuffer(side=TranscriptSide.USER)
    )
    ai_transcript: TranscriptBuffer = Field(
        default_factory=lambda: TranscriptBuffer(side=TranscriptSide.AI)
    )

    @property
    def is_connected(self) -> bool:
        return self.connection_state in CONNECTED_STATES

    def transcript(self, side: TranscriptSide) -> TranscriptBuffer:
        if side == TranscriptSide.USER:
            return self.user_transcript
        return self.ai_transcript

    def reset(self) -> None:
        """Clear per-session fields, keeping settings and finalized history."""
        self.status = ActivityStatus.IDLE
        self.response_id = None
        self.voice_active = False
        self.pending_tool_output = False
        self.user_transcript.discard_live()
        self.ai_transcript.discard_live()


class ConnectionAttemptResult(BaseModel):
    """Outcome of a ``connect()`` call."""

    success: bool
    rejected: bool = False
    retry_after: float = 0.0
    error: Optional[str] = None
    rate_limited: bool = False
