"""
Session configuration builder.

Turns a ``Settings`` snapshot into the ``session`` payload understood by the
Realtime API. The payload is sent over the data channel as a
``session.update`` event once the channel opens and again whenever the
settings change while connected.
"""

from typing import Any, Dict

from realtime_webrtc.client.emotions import face_expression_tool
from realtime_webrtc.config.constants import EVENT_SESSION_UPDATE
from realtime_webrtc.models.settings import (
    DEFAULT_PREFIX_PADDING_MS,
    DEFAULT_SILENCE_DURATION_MS,
    DEFAULT_VAD_THRESHOLD,
    NoiseReduction,
    Settings,
    VadMode,
)

INSTRUCTIONS = (
    "You are a warm and naturally conversational AI assistant. Speak like a real "
    "person would, vary your tone and pace, and be engaging and empathetic. "
    "Use function calls to update your facial expression based on the "
    "conversation context."
)

WHISPER_PROMPT = (
    "This is a clear conversation in English. The user is speaking naturally "
    "through their device microphone. Please transcribe accurately with proper "
    "punctuation and formatting."
)
TRANSCRIBE_PROMPT = (
    "Transcribe this audio clearly and accurately. The speaker is using a device "
    "microphone in a conversational setting. Include proper punctuation and "
    "natural speech patterns."
)

LOGPROBS_INCLUDE = "item.input_audio_transcription.logprobs"
TRANSCRIPTION_LANGUAGE = "en"
TEMPERATURE = 0.8
MAX_RESPONSE_OUTPUT_TOKENS = 4096


def build_turn_detection(settings: Settings) -> Dict[str, Any]:
    """Build the ``turn_detection`` block for the selected VAD mode."""
    if settings.vad_mode == VadMode.SEMANTIC:
        return {
            "type": "semantic_vad",
            "eagerness": settings.vad_eagerness.value,
            "create_response": True,
            "interrupt_response": settings.interrupt_response,
        }

    return {
        "type": "server_vad",
        "threshold": (
            DEFAULT_VAD_THRESHOLD if settings.vad_threshold is None else settings.vad_threshold
        ),
        "prefix_padding_ms": (
            DEFAULT_PREFIX_PADDING_MS
            if settings.prefix_padding_ms is None
            else settings.prefix_padding_ms
        ),
        "silence_duration_ms": (
            DEFAULT_SILENCE_DURATION_MS
            if settings.silence_duration_ms is None
            else settings.silence_duration_ms
        ),
        "create_response": True,
        "interrupt_response": settings.interrupt_response,
    }


def build_transcription(settings: Settings) -> Dict[str, Any]:
    prompt = WHISPER_PROMPT if settings.transcription_model == "whisper-1" else TRANSCRIBE_PROMPT
    return {
        "model": settings.transcription_model,
        "prompt": prompt,
        "language": TRANSCRIPTION_LANGUAGE,
    }


def _add_optional_fields(payload: Dict[str, Any], settings: Settings) -> None:
    # The API treats an absent field differently from an explicit null
    if settings.noise_reduction != NoiseReduction.NONE:
        payload["input_audio_noise_reduction"] = {"type": settings.noise_reduction.value}
    if settings.include_confidence:
        payload["include"] = [LOGPROBS_INCLUDE]


def build_session_config(settings: Settings) -> Dict[str, Any]:
    """
    Build the full session configuration for a ``session.update`` event.

    Args:
        settings: Current settings snapshot

    Returns:
        Dictionary suitable for the ``session`` field of ``session.update``
    """
    payload: Dict[str, Any] = {
        "instructions": INSTRUCTIONS,
        "voice": settings.voice,
        "modalities": ["text", "audio"],
        "turn_detection": build_turn_detection(settings),
        "input_audio_format": "pcm16",
        "output_audio_format": "pcm16",
        "input_audio_transcription": build_transcription(settings),
        "tools": [face_expression_tool()],
        "tool_choice": "auto",
        "temperature": TEMPERATURE,
        "max_response_output_tokens": MAX_RESPONSE_OUTPUT_TOKENS,
    }
    _add_optional_fields(payload, settings)
    return payload


def build_session_update(settings: Settings) -> Dict[str, Any]:
    """Wrap the configuration in a ``session.update`` client event."""
    return {"type": EVENT_SESSION_UPDATE, "session": build_session_config(settings)}


def build_token_request(settings: Settings) -> Dict[str, Any]:
    """Body sent to the token broker when requesting an ephemeral credential."""
    payload: Dict[str, Any] = {
        "voice": settings.voice,
        "turn_detection": build_turn_detection(settings),
        "input_audio_transcription": build_transcription(settings),
        "tools": [face_expression_tool()],
    }
    _add_optional_fields(payload, settings)
    return payload
