"""
Services module for the HTTP integrations of the realtime client and relay.

Key components:
- token_broker: Client side of ``POST /session``, returning an ephemeral
  credential from the relay.
- negotiation: Posts the SDP offer to the Realtime API and returns the answer.
- openai_sessions: Relay side call that mints ephemeral sessions with the
  server-held API key.

All calls use ``requests`` in a worker thread so the event loop stays
responsive while a request is pending.
"""

# Services module initialization
