"""
Constants and configuration values used throughout the application.

This module defines constants that are used across the client and the relay,
providing a centralized location for endpoints, model identifiers, timeouts
and the reconnect/backoff policy.
"""

# Logger name used throughout the application
LOGGER_NAME = "realtime_webrtc"

# OpenAI Realtime API endpoints
REALTIME_BASE_URL = "https://api.openai.com/v1/realtime"
REALTIME_SESSIONS_URL = "https://api.openai.com/v1/realtime/sessions"

# Default OpenAI model for Realtime API
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2025-06-03"

# Local relay (token broker) used by the client
DEFAULT_TOKEN_BROKER_URL = "http://localhost:8000"

# WebRTC
DATA_CHANNEL_LABEL = "oai-events"
STUN_SERVER_URL = "stun:stun.l.google.com:19302"

# Timeouts (seconds)
NETWORK_TIMEOUT = 15.0
DATA_CHANNEL_OPEN_TIMEOUT = 15.0

# Backoff policy (seconds)
BACKOFF_BASE_DELAY = 2.0
BACKOFF_CAP_DELAY = 60.0
RATE_LIMIT_MIN_DELAY = 60.0
RATE_LIMIT_MAX_DELAY = 120.0
RATE_LIMIT_ESCALATION_STEP = 30.0

# Relay-side attempt window per client identity
SESSION_ATTEMPT_LIMIT = 10
SESSION_ATTEMPT_WINDOW = 60.0

# Microphone capture
MIC_SAMPLE_RATE = 24000
MIC_CHANNELS = 1
MIC_FRAME_SAMPLES = 480  # 20ms at 24kHz

# Visualization
SPECTRUM_FFT_SIZE = 256
SPECTRUM_BAR_COUNT = 24
SPECTRUM_MIN_DECIBELS = -100.0
SPECTRUM_MAX_DECIBELS = -30.0
VISUALIZER_INTERVAL = 1 / 30

# Face expression defaults
DEFAULT_EMOTION_INTENSITY = 0.5
DEFAULT_EMOTION_DURATION_MS = 2000

# Client event types (outbound)
EVENT_SESSION_UPDATE = "session.update"
EVENT_CONVERSATION_ITEM_CREATE = "conversation.item.create"
EVENT_RESPONSE_CREATE = "response.create"

# Server event types (inbound)
EVENT_SESSION_CREATED = "session.created"
EVENT_SESSION_UPDATED = "session.updated"
EVENT_SPEECH_STARTED = "input_audio_buffer.speech_started"
EVENT_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
EVENT_AUDIO_BUFFER_COMMITTED = "input_audio_buffer.committed"
EVENT_CONVERSATION_ITEM_CREATED = "conversation.item.created"
EVENT_TRANSCRIPTION_DELTA = "conversation.item.input_audio_transcription.delta"
EVENT_TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
EVENT_TRANSCRIPTION_FAILED = "conversation.item.input_audio_transcription.failed"
EVENT_RESPONSE_CREATED = "response.created"
EVENT_RESPONSE_OUTPUT_ITEM_ADDED = "response.output_item.added"
EVENT_RESPONSE_CONTENT_PART_ADDED = "response.content_part.added"
EVENT_RESPONSE_AUDIO_DELTA = "response.audio.delta"
EVENT_RESPONSE_AUDIO_DONE = "response.audio.done"
EVENT_RESPONSE_AUDIO_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
EVENT_RESPONSE_AUDIO_TRANSCRIPT_DONE = "response.audio_transcript.done"
EVENT_RESPONSE_TEXT_DELTA = "response.text.delta"
EVENT_RESPONSE_TEXT_DONE = "response.text.done"
EVENT_RESPONSE_FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"
EVENT_RESPONSE_DONE = "response.done"
EVENT_ERROR = "error"
EVENT_RATE_LIMITS_UPDATED = "rate_limits.updated"
