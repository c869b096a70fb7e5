"""
Error taxonomy for the realtime client.

Every error is caught at the boundary of the operation that raised it,
logged, and reported once to the session listener. Errors flagged as rate
limited additionally escalate the backoff policy.
"""

from typing import Optional

RATE_LIMIT_SIGNATURES = ("429", "too many requests", "rate limit", "rate_limit")


def is_rate_limit_signature(*values: Optional[str]) -> bool:
    """Return True if any of the given strings looks like a rate-limit error."""
    for value in values:
        if value and any(sig in str(value).lower() for sig in RATE_LIMIT_SIGNATURES):
            return True
    return False


class RealtimeClientError(Exception):
    """Base class for all realtime client errors."""

    def __init__(self, message: str, rate_limited: bool = False):
        super().__init__(message)
        self.message = message
        self.rate_limited = rate_limited


class CredentialError(RealtimeClientError):
    """The token broker did not return an ephemeral credential."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message, rate_limited=status == 429)
        self.status = status
        self.body = body


class NegotiationError(RealtimeClientError):
    """The SDP exchange with the Realtime API failed."""

    def __init__(self, status: int, body: str):
        super().__init__(f"SDP exchange failed: {status} - {body}", rate_limited=status == 429)
        self.status = status
        self.body = body


class MicrophoneError(RealtimeClientError):
    """Microphone access was denied or no input device is available."""


class DataChannelError(RealtimeClientError):
    """The data channel failed or never opened."""


class ServerError(RealtimeClientError):
    """The server sent an ``error`` event."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message, rate_limited=is_rate_limit_signature(message, code))
        self.code = code


class TranscriptionFailure(RealtimeClientError):
    """Input audio transcription failed for the given reason code."""

    AUDIO_TOO_QUIET = "audio_too_quiet"
    AUDIO_UNCLEAR = "audio_unclear"
    AUDIO_TOO_SHORT = "audio_too_short"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"

    def __init__(self, reason: str, message: str):
        rate_limited = reason == self.RATE_LIMITED or is_rate_limit_signature(message, reason)
        super().__init__(message, rate_limited=rate_limited)
        self.reason = self.RATE_LIMITED if rate_limited else reason
