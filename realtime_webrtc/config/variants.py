"""
Feature flag table for the supported Realtime API variants.

Each API release shipped with slightly different defaults (model id, VAD
mode, transcription model, noise reduction). Instead of one relay per
release, a single relay looks the active variant up in this table.
"""

import logging
from typing import Dict

from pydantic import BaseModel

from realtime_webrtc.config.constants import LOGGER_NAME
from realtime_webrtc.models.settings import (
    NoiseReduction,
    Settings,
    VadEagerness,
    VadMode,
)

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_VARIANT = "2025-06-03"


class ApiVariant(BaseModel):
    """Defaults that differ between Realtime API releases."""
    name: str
    model: str
    voice: str
    vad_mode: VadMode
    vad_eagerness: VadEagerness
    transcription_model: str
    noise_reduction: NoiseReduction

    def default_settings(self) -> Settings:
        """Build the initial settings snapshot for this variant."""
        return Settings(
            voice=self.voice,
            vad_mode=self.vad_mode,
            vad_eagerness=self.vad_eagerness,
            transcription_model=self.transcription_model,
            noise_reduction=self.noise_reduction,
        )


VARIANTS: Dict[str, ApiVariant] = {
    "2024-12-17": ApiVariant(
        name="2024-12-17",
        model="gpt-4o-realtime-preview-2024-12-17",
        voice="shimmer",
        vad_mode=VadMode.SEMANTIC,
        vad_eagerness=VadEagerness.HIGH,
        transcription_model="gpt-4o-transcribe",
        noise_reduction=NoiseReduction.NONE,
    ),
    "2025-06-03": ApiVariant(
        name="2025-06-03",
        model="gpt-4o-realtime-preview-2025-06-03",
        voice="ballad",
        vad_mode=VadMode.SEMANTIC,
        vad_eagerness=VadEagerness.AUTO,
        transcription_model="whisper-1",
        noise_reduction=NoiseReduction.NEAR_FIELD,
    ),
    "mini": ApiVariant(
        name="mini",
        model="gpt-4o-mini-realtime-preview",
        voice="verse",
        vad_mode=VadMode.SERVER,
        vad_eagerness=VadEagerness.AUTO,
        transcription_model="whisper-1",
        noise_reduction=NoiseReduction.NEAR_FIELD,
    ),
}


def get_variant(name: str = None) -> ApiVariant:
    """
    Look up an API variant by name.

    Unknown names fall back to the default variant with a warning.
    """
    if not name:
        return VARIANTS[DEFAULT_VARIANT]
    variant = VARIANTS.get(name)
    if variant is None:
        logger.warning(f"Unknown API variant '{name}', using {DEFAULT_VARIANT}")
        return VARIANTS[DEFAULT_VARIANT]
    return variant
