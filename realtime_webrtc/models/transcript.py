"""
Transcript buffers for the user and AI sides of a conversation.

A buffer holds finalized utterances plus at most one live entry. The live
entry is always the most recent entry and is replaced in place as deltas
arrive; finalizing it removes the live tag and empties the accumulation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TranscriptSide(str, Enum):
    USER = "user"
    AI = "ai"


class TranscriptEntry(BaseModel):
    """A single transcript line."""
    text: str = ""
    live: bool = False
    failed: bool = False
    confidence: Optional[float] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TranscriptBuffer(BaseModel):
    """Ordered transcript entries for one side of the conversation."""

    side: TranscriptSide
    entries: List[TranscriptEntry] = Field(default_factory=list)

    @property
    def live_entry(self) -> Optional[TranscriptEntry]:
        if self.entries and self.entries[-1].live:
            return self.entries[-1]
        return None

    @property
    def finalized(self) -> List[TranscriptEntry]:
        return [entry for entry in self.entries if not entry.live]

    def open_live(self) -> TranscriptEntry:
        """Start a new live entry, discarding any unfinished one."""
        self.discard_live()
        entry = TranscriptEntry(live=True)
        self.entries.append(entry)
        return entry

    def append_delta(self, delta: str) -> TranscriptEntry:
        """Extend the live entry, creating it when absent."""
        entry = self.live_entry or self.open_live()
        entry.text += delta
        return entry

    def finalize(self, text: Optional[str] = None, confidence: Optional[float] = None) -> Optional[TranscriptEntry]:
        """
        Finalize the live entry.

        Args:
            text: Full text reported by the server. Empty or missing text keeps
                the accumulated deltas.
            confidence: Optional mean confidence of the transcription

        Returns:
            The finalized entry, or None when there was nothing to finalize
        """
        entry = self.live_entry
        if entry is None:
            if not text:
                return None
            entry = TranscriptEntry(text=text, confidence=confidence)
            self.entries.append(entry)
            return entry

        if text:
            entry.text = text
        entry.live = False
        entry.confidence = confidence
        if not entry.text:
            # Nothing was said; drop the placeholder instead of keeping an empty line
            self.entries.pop()
            return None
        return entry

    def fail(self, message: str) -> TranscriptEntry:
        """Replace the live entry with a failure sentinel."""
        self.discard_live()
        entry = TranscriptEntry(text=message, failed=True)
        self.entries.append(entry)
        return entry

    def discard_live(self) -> None:
        if self.live_entry is not None:
            self.entries.pop()

    def clear(self) -> None:
        self.entries.clear()
