"""
Observer interface between the connection manager and a presentation layer.

Any front end (terminal, web bridge, native UI) subclasses ``SessionListener``
and overrides the callbacks it cares about. The default implementations do
nothing, so partial listeners are fine.
"""

import logging
from typing import List

from realtime_webrtc.client.emotions import Expression
from realtime_webrtc.config.constants import LOGGER_NAME
from realtime_webrtc.models.session import ActivityStatus, ConnectionState
from realtime_webrtc.models.transcript import TranscriptBuffer

logger = logging.getLogger(LOGGER_NAME)


class SessionListener:
    """Receives state changes emitted by the connection manager."""

    def on_status_change(self, state: ConnectionState, status: ActivityStatus) -> None:
        pass

    def on_transcript_update(self, transcript: TranscriptBuffer) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass

    def on_emotion(self, expression: Expression) -> None:
        pass

    def on_spectrum(self, magnitudes: List[int]) -> None:
        pass


class LoggingListener(SessionListener):
    """Listener that writes every notification to the application log."""

    def on_status_change(self, state, status):
        logger.info(f"Status: {state.value} ({status.value})")

    def on_transcript_update(self, transcript):
        entry = transcript.entries[-1] if transcript.entries else None
        if entry is not None and not entry.live:
            logger.info(f"[{transcript.side.value}] {entry.text}")

    def on_error(self, message):
        logger.error(f"Error: {message}")

    def on_emotion(self, expression):
        logger.info(
            f"Setting face emotion: {expression.emotion.value} "
            f"(intensity: {expression.intensity})"
        )
