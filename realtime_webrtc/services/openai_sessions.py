"""
Relay-side call that mints ephemeral Realtime sessions.

Used by the token broker endpoint: the request body from the browser or
terminal client is merged over the active API variant's defaults and posted
to OpenAI with the server-held API key.
"""

import asyncio
import logging
from typing import Any, Dict

import requests

from realtime_webrtc.client.session_config import INSTRUCTIONS, build_token_request
from realtime_webrtc.config.constants import (
    LOGGER_NAME,
    NETWORK_TIMEOUT,
    REALTIME_SESSIONS_URL,
)
from realtime_webrtc.config.variants import ApiVariant

logger = logging.getLogger(LOGGER_NAME)


class UpstreamError(Exception):
    """OpenAI rejected the session request or could not be reached."""

    def __init__(self, status: int, body: str):
        super().__init__(f"OpenAI API error: {status}")
        self.status = status
        self.body = body


def build_session_request(variant: ApiVariant, overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Merge client-supplied session fields over the variant defaults."""
    payload = {
        "model": variant.model,
        "instructions": INSTRUCTIONS,
        "modalities": ["text", "audio"],
    }
    payload.update(build_token_request(variant.default_settings()))
    payload.update({key: value for key, value in overrides.items() if value is not None})
    payload["model"] = variant.model
    return payload


async def create_realtime_session(api_key: str, payload: Dict[str, Any],
                                  timeout: float = NETWORK_TIMEOUT) -> Dict[str, Any]:
    """
    Create an ephemeral session with OpenAI.

    Returns:
        The upstream JSON, including ``client_secret``

    Raises:
        UpstreamError: On transport failure (status 502) or non-2xx response
    """
    try:
        response = await asyncio.to_thread(
            requests.post,
            REALTIME_SESSIONS_URL,
            json=payload,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.error(f"Could not reach OpenAI: {e}")
        raise UpstreamError(502, str(e)) from e

    if not response.ok:
        logger.error(f"OpenAI API error: {response.status_code} - {response.text[:200]}")
        raise UpstreamError(response.status_code, response.text)

    logger.info("Ephemeral token created for client")
    return response.json()
