"""
Unit tests for settings, API variants and the session configuration builder.
"""

import pytest
from pydantic import ValidationError

from realtime_webrtc.client.session_config import (
    LOGPROBS_INCLUDE,
    MAX_RESPONSE_OUTPUT_TOKENS,
    TEMPERATURE,
    build_session_config,
    build_session_update,
    build_token_request,
    build_turn_detection,
)
from realtime_webrtc.config.variants import DEFAULT_VARIANT, VARIANTS, get_variant
from realtime_webrtc.models.settings import NoiseReduction, Settings, VadEagerness, VadMode

SERVER_ONLY_FIELDS = ("threshold", "prefix_padding_ms", "silence_duration_ms")


class TestSettings:
    """Tests for the Settings snapshot."""

    def test_settings_are_immutable(self):
        settings = Settings()

        with pytest.raises(ValidationError):
            settings.voice = "verse"

    def test_with_changes_returns_new_snapshot(self):
        settings = Settings()

        changed = settings.with_changes(voice="verse", vad_mode="server")

        assert settings.voice == "ballad"
        assert changed.voice == "verse"
        assert changed.vad_mode == VadMode.SERVER

    def test_with_changes_validates(self):
        with pytest.raises(ValidationError):
            Settings().with_changes(vad_threshold=2.5)


class TestTurnDetection:
    """Tests for the VAD configuration."""

    @pytest.mark.parametrize("eagerness", list(VadEagerness))
    def test_semantic_has_no_server_fields(self, eagerness):
        turn_detection = build_turn_detection(Settings(vad_eagerness=eagerness))

        assert turn_detection["type"] == "semantic_vad"
        assert turn_detection["eagerness"] == eagerness.value
        for field in SERVER_ONLY_FIELDS:
            assert field not in turn_detection

    def test_server_uses_defaults(self):
        turn_detection = build_turn_detection(Settings(vad_mode=VadMode.SERVER))

        assert turn_detection == {
            "type": "server_vad",
            "threshold": 0.5,
            "prefix_padding_ms": 300,
            "silence_duration_ms": 500,
            "create_response": True,
            "interrupt_response": True,
        }

    def test_server_uses_explicit_values(self):
        settings = Settings(
            vad_mode=VadMode.SERVER,
            vad_threshold=0.0,
            prefix_padding_ms=100,
            silence_duration_ms=900,
            interrupt_response=False,
        )

        turn_detection = build_turn_detection(settings)

        assert turn_detection["threshold"] == 0.0
        assert turn_detection["prefix_padding_ms"] == 100
        assert turn_detection["silence_duration_ms"] == 900
        assert turn_detection["interrupt_response"] is False


class TestSessionConfig:
    """Tests for the full session payload."""

    def test_full_payload(self):
        config = build_session_config(Settings())

        assert config["voice"] == "ballad"
        assert config["modalities"] == ["text", "audio"]
        assert config["input_audio_format"] == "pcm16"
        assert config["output_audio_format"] == "pcm16"
        assert config["input_audio_transcription"]["model"] == "whisper-1"
        assert config["input_audio_transcription"]["language"] == "en"
        assert config["tools"][0]["name"] == "set_face_expression"
        assert config["temperature"] == TEMPERATURE
        assert config["max_response_output_tokens"] == MAX_RESPONSE_OUTPUT_TOKENS
        assert config["input_audio_noise_reduction"] == {"type": "near_field"}
        assert "include" not in config

    def test_disabled_options_are_omitted(self):
        config = build_session_config(Settings(noise_reduction=NoiseReduction.NONE))

        assert "input_audio_noise_reduction" not in config
        assert "include" not in config

    def test_confidence_requests_logprobs(self):
        config = build_session_config(Settings(include_confidence=True))

        assert config["include"] == [LOGPROBS_INCLUDE]

    def test_transcription_prompt_depends_on_model(self):
        whisper = build_session_config(Settings())["input_audio_transcription"]["prompt"]
        transcribe = build_session_config(
            Settings(transcription_model="gpt-4o-transcribe")
        )["input_audio_transcription"]["prompt"]

        assert whisper != transcribe

    def test_session_update_envelope(self):
        message = build_session_update(Settings())

        assert message["type"] == "session.update"
        assert message["session"] == build_session_config(Settings())

    def test_token_request(self):
        body = build_token_request(Settings(vad_mode=VadMode.SERVER, noise_reduction=NoiseReduction.FAR_FIELD))

        assert set(body) == {
            "voice",
            "turn_detection",
            "input_audio_transcription",
            "tools",
            "input_audio_noise_reduction",
        }
        assert body["turn_detection"]["type"] == "server_vad"


class TestVariants:
    """Tests for the API variant table."""

    def test_default_variant(self):
        assert get_variant().name == DEFAULT_VARIANT
        assert get_variant(None).model == "gpt-4o-realtime-preview-2025-06-03"

    def test_unknown_variant_falls_back(self):
        assert get_variant("1999-01-01").name == DEFAULT_VARIANT

    @pytest.mark.parametrize("name", sorted(VARIANTS))
    def test_variant_default_settings(self, name):
        variant = VARIANTS[name]

        settings = variant.default_settings()

        assert settings.voice == variant.voice
        assert settings.vad_mode == variant.vad_mode
        assert settings.transcription_model == variant.transcription_model
        assert settings.noise_reduction == variant.noise_reduction
