"""
SDP exchange with the OpenAI Realtime API.

The local offer is posted as raw SDP with the ephemeral credential as bearer
token; the response body is the raw SDP answer.
"""

import asyncio
import logging

import requests

from realtime_webrtc.client.errors import NegotiationError
from realtime_webrtc.config.constants import (
    DEFAULT_REALTIME_MODEL,
    LOGGER_NAME,
    NETWORK_TIMEOUT,
    REALTIME_BASE_URL,
)

logger = logging.getLogger(LOGGER_NAME)


class SdpNegotiator:
    """Posts SDP offers to ``{base_url}?model={model}``."""

    def __init__(self, model: str = DEFAULT_REALTIME_MODEL, base_url: str = REALTIME_BASE_URL,
                 timeout: float = NETWORK_TIMEOUT):
        self.model = model
        self.base_url = base_url
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{self.base_url}?model={self.model}"

    async def exchange(self, offer_sdp: str, ephemeral_key: str) -> str:
        """
        Send the local offer and return the remote answer SDP.

        Raises:
            NegotiationError: On transport failure or a non-2xx response
        """
        logger.info(f"Sending WebRTC offer to OpenAI with model: {self.model}")
        try:
            response = await asyncio.to_thread(
                requests.post,
                self.url,
                data=offer_sdp,
                headers={
                    "Authorization": f"Bearer {ephemeral_key}",
                    "Content-Type": "application/sdp",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NegotiationError(0, str(e)) from e

        if not response.ok:
            raise NegotiationError(response.status_code, response.text)

        logger.debug(f"Received SDP answer ({len(response.text)} bytes)")
        return response.text
