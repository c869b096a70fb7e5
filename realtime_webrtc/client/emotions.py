"""
Face expression tool used by the model to drive the face renderer.

The session configuration declares a ``set_face_expression`` function. When
the model calls it, the arguments are validated here and turned into an
``Expression`` that the listener forwards to the renderer.
"""

import json
import math
import logging
from enum import Enum
from typing import Any, Dict, Union

from pydantic import BaseModel

from realtime_webrtc.config.constants import (
    DEFAULT_EMOTION_DURATION_MS,
    DEFAULT_EMOTION_INTENSITY,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

FACE_EXPRESSION_TOOL = "set_face_expression"


class Emotion(str, Enum):
    HAPPY = "happy"
    SAD = "sad"
    EXCITED = "excited"
    THINKING = "thinking"
    CONFUSED = "confused"
    SURPRISED = "surprised"
    LAUGHING = "laughing"
    NEUTRAL = "neutral"
    LISTENING = "listening"
    SPEAKING = "speaking"


class Expression(BaseModel):
    """An emotion with intensity in [0, 1] and duration in milliseconds."""
    emotion: Emotion = Emotion.NEUTRAL
    intensity: float = DEFAULT_EMOTION_INTENSITY
    duration_ms: int = DEFAULT_EMOTION_DURATION_MS


def face_expression_tool() -> Dict[str, Any]:
    """Tool declaration sent as part of the session configuration."""
    return {
        "type": "function",
        "name": FACE_EXPRESSION_TOOL,
        "description": "Update the facial expression of the animated face to match the conversation.",
        "parameters": {
            "type": "object",
            "properties": {
                "emotion": {
                    "type": "string",
                    "enum": [emotion.value for emotion in Emotion],
                    "description": "Emotion to display",
                },
                "intensity": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 1,
                    "description": "Strength of the expression",
                },
                "duration": {
                    "type": "integer",
                    "description": "Transition duration in milliseconds",
                },
            },
            "required": ["emotion"],
        },
    }


def parse_expression(arguments: Union[str, Dict[str, Any], None]) -> Expression:
    """
    Build an ``Expression`` from tool call arguments.

    Unknown emotions fall back to neutral, intensity is clamped to [0, 1] and
    invalid numbers are replaced with defaults, so this never raises on bad
    model output.
    """
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError:
            logger.warning(f"Invalid face expression arguments: {arguments!r}")
            arguments = {}
    if not isinstance(arguments, dict):
        arguments = {}

    raw_emotion = arguments.get("emotion")
    try:
        emotion = Emotion(str(raw_emotion).lower())
    except ValueError:
        logger.warning(f"Invalid emotion: {raw_emotion}. Using neutral.")
        emotion = Emotion.NEUTRAL

    try:
        intensity = float(arguments.get("intensity", DEFAULT_EMOTION_INTENSITY))
    except (TypeError, ValueError):
        intensity = DEFAULT_EMOTION_INTENSITY
    if math.isnan(intensity):
        intensity = DEFAULT_EMOTION_INTENSITY

    try:
        duration_ms = int(arguments.get("duration", DEFAULT_EMOTION_DURATION_MS))
    except (TypeError, ValueError, OverflowError):
        # int() rejects infinite and NaN durations
        duration_ms = DEFAULT_EMOTION_DURATION_MS

    return Expression(
        emotion=emotion,
        intensity=max(0.0, min(1.0, intensity)),
        duration_ms=max(0, duration_ms),
    )
