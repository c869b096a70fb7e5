"""
Unit tests for the error taxonomy.
"""

import pytest

from realtime_webrtc.client.errors import (
    CredentialError,
    NegotiationError,
    RealtimeClientError,
    ServerError,
    TranscriptionFailure,
    is_rate_limit_signature,
)


@pytest.mark.parametrize("value, expected", [
    ("429", True),
    ("Too Many Requests", True),
    ("RATE LIMIT reached", True),
    ("rate_limit_exceeded", True),
    ("invalid_request_error", False),
    (None, False),
    ("", False),
])
def test_rate_limit_signature(value, expected):
    assert is_rate_limit_signature(value) is expected


def test_credential_error_rate_limited_only_on_429():
    assert CredentialError("slow down", status=429).rate_limited is True
    assert CredentialError("broken", status=500).rate_limited is False
    assert CredentialError("unreachable").rate_limited is False


def test_negotiation_error_message():
    error = NegotiationError(400, "bad sdp")

    assert isinstance(error, RealtimeClientError)
    assert str(error) == "SDP exchange failed: 400 - bad sdp"
    assert error.status == 400
    assert error.body == "bad sdp"
    assert error.rate_limited is False
    assert NegotiationError(429, "").rate_limited is True


def test_server_error_uses_code():
    assert ServerError("Slow down", code="rate_limit_exceeded").rate_limited is True
    assert ServerError("Bad field", code="invalid_value").rate_limited is False


def test_transcription_failure_normalizes_rate_limit():
    failure = TranscriptionFailure("unknown", "429 Too Many Requests")

    assert failure.rate_limited is True
    assert failure.reason == TranscriptionFailure.RATE_LIMITED
    assert TranscriptionFailure("audio_unclear", "Mumbling").reason == "audio_unclear"
