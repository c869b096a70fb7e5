"""
Unit tests for the session listener interface.
"""

import logging

from realtime_webrtc.client.emotions import Emotion, Expression
from realtime_webrtc.client.listener import LoggingListener, SessionListener
from realtime_webrtc.config.constants import LOGGER_NAME
from realtime_webrtc.models.session import ActivityStatus, ConnectionState
from realtime_webrtc.models.transcript import TranscriptBuffer, TranscriptSide


def test_base_listener_is_a_no_op():
    listener = SessionListener()

    listener.on_status_change(ConnectionState.IDLE, ActivityStatus.IDLE)
    listener.on_transcript_update(TranscriptBuffer(side=TranscriptSide.USER))
    listener.on_error("boom")
    listener.on_emotion(Expression())
    listener.on_spectrum([0] * 24)


def test_logging_listener(caplog, monkeypatch):
    logger = logging.getLogger(LOGGER_NAME)
    monkeypatch.setattr(logger, "propagate", True)
    listener = LoggingListener()
    transcript = TranscriptBuffer(side=TranscriptSide.AI)
    transcript.finalize("Hello there")

    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        listener.on_status_change(ConnectionState.CONNECTED, ActivityStatus.LISTENING)
        listener.on_transcript_update(transcript)
        listener.on_emotion(Expression(emotion=Emotion.HAPPY, intensity=0.7))
        listener.on_error("Something failed")

    assert "connected (listening)" in caplog.text
    assert "[ai] Hello there" in caplog.text
    assert "happy" in caplog.text
    assert "Error: Something failed" in caplog.text
