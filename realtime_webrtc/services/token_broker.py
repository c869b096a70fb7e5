"""
Client for the relay's token broker endpoint.

The broker exchanges the server-held API key for a short-lived client
credential. Requests run in a worker thread so the event loop keeps
processing while the broker responds.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from realtime_webrtc.client.errors import CredentialError
from realtime_webrtc.config.constants import (
    DEFAULT_TOKEN_BROKER_URL,
    LOGGER_NAME,
    NETWORK_TIMEOUT,
)

logger = logging.getLogger(LOGGER_NAME)


class EphemeralCredential:
    """Short-lived bearer token returned by the token broker."""

    def __init__(self, value: str, expires_at: Optional[int] = None, session: Optional[Dict[str, Any]] = None):
        self.value = value
        self.expires_at = expires_at
        self.session = session or {}

    def __repr__(self):
        return f"EphemeralCredential(expires_at={self.expires_at})"


class TokenBrokerClient:
    """Fetches ephemeral credentials from ``POST {base_url}/session``."""

    def __init__(self, base_url: str = DEFAULT_TOKEN_BROKER_URL, timeout: float = NETWORK_TIMEOUT):
        self.url = f"{base_url.rstrip('/')}/session"
        self.timeout = timeout

    async def fetch_credential(self, payload: Dict[str, Any]) -> EphemeralCredential:
        """
        Request an ephemeral credential.

        Args:
            payload: Settings-derived session configuration

        Returns:
            EphemeralCredential with the client secret

        Raises:
            CredentialError: On transport failure, non-2xx status (429 is
                flagged as rate limited) or a response without a client secret
        """
        logger.info("Requesting ephemeral token")
        try:
            response = await asyncio.to_thread(
                requests.post,
                self.url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CredentialError(f"Token broker unreachable: {e}") from e

        if not response.ok:
            body = response.text
            if response.status_code == 429:
                raise CredentialError(
                    f"Server rate limit: {body}. Please wait before reconnecting.",
                    status=429,
                    body=body,
                )
            raise CredentialError(
                f"Session creation failed: {response.status_code} - {body}",
                status=response.status_code,
                body=body,
            )

        try:
            data = response.json()
            secret = data["client_secret"]
            value = secret["value"]
        except (ValueError, KeyError, TypeError) as e:
            raise CredentialError(
                "Token broker response did not contain a client secret",
                status=response.status_code,
                body=response.text,
            ) from e

        logger.info("Ephemeral token received")
        return EphemeralCredential(value, secret.get("expires_at"), data)
