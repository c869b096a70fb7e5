"""
Realtime WebRTC - terminal client and token relay for the OpenAI Realtime API

This package connects a local microphone to OpenAI's Realtime API over a
WebRTC peer connection, with conversation events exchanged on the
``oai-events`` data channel. A small FastAPI relay holds the real API key and
hands out short-lived client credentials.

Architecture Overview:
- FastAPI relay exposing the token broker endpoint (``POST /session``)
- aiortc peer connection with one audio transceiver and one data channel
- Pure event dispatcher turning server events into state changes and intents
- Backoff policy that keeps reconnect attempts within the API's rate limits

Key Components:
- client: Connection manager, dispatcher, backoff, microphone and listener
- config: Application-wide constants, API variants and logging setup
- models: Settings, server events, transcripts and session state
- services: HTTP clients for the token broker and the Realtime API
- main: The relay application

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key (relay only)
   - REALTIME_API_VARIANT: API variant to use (default 2025-06-03)
   - TOKEN_BROKER_URL: Relay address used by the client

2. Start the relay:
   ```bash
   python run.py
   ```

3. Start the terminal client:
   ```bash
   python client.py
   ```
"""
