"""
User-selectable session settings.

A ``Settings`` instance is an immutable snapshot. Changing a setting produces
a new snapshot through ``Settings.with_changes``; the connection manager then
re-sends the derived configuration while connected.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class VadMode(str, Enum):
    """Turn detection strategy used by the server."""
    SEMANTIC = "semantic"
    SERVER = "server"


class VadEagerness(str, Enum):
    """How eagerly semantic VAD ends the user's turn."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    AUTO = "auto"


class NoiseReduction(str, Enum):
    """Input audio noise reduction mode."""
    NEAR_FIELD = "near_field"
    FAR_FIELD = "far_field"
    NONE = "none"


# Server VAD stability defaults
DEFAULT_VAD_THRESHOLD = 0.5
DEFAULT_PREFIX_PADDING_MS = 300
DEFAULT_SILENCE_DURATION_MS = 500

VOICES = ("alloy", "ash", "ballad", "coral", "echo", "sage", "shimmer", "verse")


class Settings(BaseModel):
    """Snapshot of the settings that drive the session configuration."""

    model_config = ConfigDict(frozen=True)

    voice: str = Field(default="ballad", description="Voice used for audio output")
    vad_mode: VadMode = VadMode.SEMANTIC
    vad_eagerness: VadEagerness = VadEagerness.AUTO
    vad_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    prefix_padding_ms: Optional[int] = Field(default=None, ge=0)
    silence_duration_ms: Optional[int] = Field(default=None, ge=0)
    transcription_model: str = "whisper-1"
    noise_reduction: NoiseReduction = NoiseReduction.NEAR_FIELD
    interrupt_response: bool = True
    include_confidence: bool = False

    def with_changes(self, **changes) -> "Settings":
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return Settings(**data)
