"""
Unit tests for the HTTP services: token broker client, SDP negotiator and
the relay's upstream session call.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from realtime_webrtc.client.errors import CredentialError, NegotiationError
from realtime_webrtc.config.variants import get_variant
from realtime_webrtc.services.negotiation import SdpNegotiator
from realtime_webrtc.services.openai_sessions import (
    UpstreamError,
    build_session_request,
    create_realtime_session,
)
from realtime_webrtc.services.token_broker import TokenBrokerClient


def make_response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    response.json.return_value = json_data
    return response


class TestTokenBrokerClient:
    """Tests for the TokenBrokerClient class."""

    @pytest.mark.asyncio
    async def test_fetch_credential_success(self):
        body = {"client_secret": {"value": "ek_123", "expires_at": 1700000000}, "id": "sess_1"}
        client = TokenBrokerClient("http://relay:8000/")

        with patch("realtime_webrtc.services.token_broker.requests.post",
                   return_value=make_response(200, body)) as mock_post:
            credential = await client.fetch_credential({"voice": "ballad"})

        assert credential.value == "ek_123"
        assert credential.expires_at == 1700000000
        assert credential.session["id"] == "sess_1"
        args, kwargs = mock_post.call_args
        assert args[0] == "http://relay:8000/session"
        assert kwargs["json"] == {"voice": "ballad"}
        assert kwargs["timeout"] == client.timeout

    @pytest.mark.asyncio
    async def test_fetch_credential_rate_limited(self):
        client = TokenBrokerClient()

        with patch("realtime_webrtc.services.token_broker.requests.post",
                   return_value=make_response(429, text="Too Many Requests")):
            with pytest.raises(CredentialError) as exc_info:
                await client.fetch_credential({})

        assert exc_info.value.rate_limited is True
        assert exc_info.value.status == 429

    @pytest.mark.asyncio
    async def test_fetch_credential_server_error(self):
        client = TokenBrokerClient()

        with patch("realtime_webrtc.services.token_broker.requests.post",
                   return_value=make_response(502, text="upstream down")):
            with pytest.raises(CredentialError) as exc_info:
                await client.fetch_credential({})

        assert exc_info.value.rate_limited is False
        assert "502" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_fetch_credential_missing_secret(self):
        client = TokenBrokerClient()

        with patch("realtime_webrtc.services.token_broker.requests.post",
                   return_value=make_response(200, {"id": "sess_1"})):
            with pytest.raises(CredentialError):
                await client.fetch_credential({})

    @pytest.mark.asyncio
    async def test_fetch_credential_unreachable(self):
        client = TokenBrokerClient()

        with patch("realtime_webrtc.services.token_broker.requests.post",
                   side_effect=requests.ConnectionError("refused")):
            with pytest.raises(CredentialError) as exc_info:
                await client.fetch_credential({})

        assert "unreachable" in exc_info.value.message


class TestSdpNegotiator:
    """Tests for the SdpNegotiator class."""

    def test_url_includes_model(self):
        negotiator = SdpNegotiator(model="gpt-4o-mini-realtime-preview")

        assert negotiator.url == "https://api.openai.com/v1/realtime?model=gpt-4o-mini-realtime-preview"

    @pytest.mark.asyncio
    async def test_exchange_success(self):
        negotiator = SdpNegotiator()

        with patch("realtime_webrtc.services.negotiation.requests.post",
                   return_value=make_response(201, text="v=0 answer")) as mock_post:
            answer = await negotiator.exchange("v=0 offer", "ek_123")

        assert answer == "v=0 answer"
        kwargs = mock_post.call_args.kwargs
        assert kwargs["data"] == "v=0 offer"
        assert kwargs["headers"]["Authorization"] == "Bearer ek_123"
        assert kwargs["headers"]["Content-Type"] == "application/sdp"

    @pytest.mark.asyncio
    async def test_exchange_failure(self):
        negotiator = SdpNegotiator()

        with patch("realtime_webrtc.services.negotiation.requests.post",
                   return_value=make_response(400, text="invalid offer")):
            with pytest.raises(NegotiationError) as exc_info:
                await negotiator.exchange("v=0 offer", "ek_123")

        assert exc_info.value.status == 400
        assert exc_info.value.body == "invalid offer"

    @pytest.mark.asyncio
    async def test_exchange_transport_error(self):
        negotiator = SdpNegotiator()

        with patch("realtime_webrtc.services.negotiation.requests.post",
                   side_effect=requests.Timeout("slow")):
            with pytest.raises(NegotiationError) as exc_info:
                await negotiator.exchange("v=0 offer", "ek_123")

        assert exc_info.value.status == 0


class TestOpenAISessions:
    """Tests for the relay-side session creation."""

    def test_build_session_request_merges_overrides(self):
        variant = get_variant("2024-12-17")

        payload = build_session_request(variant, {"voice": "verse", "model": "other", "include": None})

        assert payload["model"] == variant.model
        assert payload["voice"] == "verse"
        assert payload["turn_detection"]["eagerness"] == "high"
        assert "input_audio_noise_reduction" not in payload
        assert "include" not in payload

    @pytest.mark.asyncio
    async def test_create_session_success(self):
        body = {"client_secret": {"value": "ek_1", "expires_at": 1}}

        with patch("realtime_webrtc.services.openai_sessions.requests.post",
                   return_value=make_response(200, body)) as mock_post:
            result = await create_realtime_session("sk-test", {"model": "m"})

        assert result == body
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_create_session_upstream_error(self):
        with patch("realtime_webrtc.services.openai_sessions.requests.post",
                   return_value=make_response(429, text="rate limited")):
            with pytest.raises(UpstreamError) as exc_info:
                await create_realtime_session("sk-test", {})

        assert exc_info.value.status == 429

    @pytest.mark.asyncio
    async def test_create_session_transport_error(self):
        with patch("realtime_webrtc.services.openai_sessions.requests.post",
                   side_effect=requests.ConnectionError("down")):
            with pytest.raises(UpstreamError) as exc_info:
                await create_realtime_session("sk-test", {})

        assert exc_info.value.status == 502
