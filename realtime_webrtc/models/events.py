"""
Pydantic models for OpenAI Realtime API server events.

Every message received over the data channel is a JSON object with a ``type``
discriminator. This module maps each known type to a model carrying only the
fields relevant to that event; unknown types parse into ``ServerEvent`` so
they can be logged and ignored.
"""

import json
import logging
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from realtime_webrtc.config import constants as c

logger = logging.getLogger(c.LOGGER_NAME)


class ServerEvent(BaseModel):
    """Base model for all inbound Realtime API events."""

    model_config = ConfigDict(extra="allow")

    type: str
    event_id: Optional[str] = None


class ErrorDetail(BaseModel):
    """Error descriptor carried by error and failure events."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None
    param: Optional[str] = None


class LogProb(BaseModel):
    """Log probability of a single transcription token."""

    model_config = ConfigDict(extra="allow")

    token: Optional[str] = None
    logprob: float


class SessionCreatedEvent(ServerEvent):
    type: Literal["session.created"]
    session: Dict[str, Any] = Field(default_factory=dict)


class SessionUpdatedEvent(ServerEvent):
    type: Literal["session.updated"]
    session: Dict[str, Any] = Field(default_factory=dict)


class SpeechStartedEvent(ServerEvent):
    type: Literal["input_audio_buffer.speech_started"]
    audio_start_ms: Optional[int] = None
    item_id: Optional[str] = None


class SpeechStoppedEvent(ServerEvent):
    type: Literal["input_audio_buffer.speech_stopped"]
    audio_end_ms: Optional[int] = None
    item_id: Optional[str] = None


class AudioBufferCommittedEvent(ServerEvent):
    type: Literal["input_audio_buffer.committed"]
    item_id: Optional[str] = None


class ConversationItemCreatedEvent(ServerEvent):
    type: Literal["conversation.item.created"]
    item: Dict[str, Any] = Field(default_factory=dict)


class TranscriptionDeltaEvent(ServerEvent):
    type: Literal["conversation.item.input_audio_transcription.delta"]
    item_id: Optional[str] = None
    delta: str = ""


class TranscriptionCompletedEvent(ServerEvent):
    type: Literal["conversation.item.input_audio_transcription.completed"]
    item_id: Optional[str] = None
    transcript: str = ""
    logprobs: Optional[List[LogProb]] = None


class TranscriptionFailedEvent(ServerEvent):
    type: Literal["conversation.item.input_audio_transcription.failed"]
    item_id: Optional[str] = None
    error: ErrorDetail = Field(default_factory=ErrorDetail)


class ResponseCreatedEvent(ServerEvent):
    type: Literal["response.created"]
    response: Dict[str, Any] = Field(default_factory=dict)

    @property
    def response_id(self) -> Optional[str]:
        return self.response.get("id")


class ResponseOutputItemAddedEvent(ServerEvent):
    type: Literal["response.output_item.added"]
    response_id: Optional[str] = None
    item: Dict[str, Any] = Field(default_factory=dict)


class ResponseContentPartAddedEvent(ServerEvent):
    type: Literal["response.content_part.added"]
    response_id: Optional[str] = None
    part: Dict[str, Any] = Field(default_factory=dict)


class ResponseAudioDeltaEvent(ServerEvent):
    type: Literal["response.audio.delta"]
    response_id: Optional[str] = None
    delta: str = ""


class ResponseAudioDoneEvent(ServerEvent):
    type: Literal["response.audio.done"]
    response_id: Optional[str] = None


class ResponseAudioTranscriptDeltaEvent(ServerEvent):
    type: Literal["response.audio_transcript.delta"]
    response_id: Optional[str] = None
    delta: str = ""


class ResponseAudioTranscriptDoneEvent(ServerEvent):
    type: Literal["response.audio_transcript.done"]
    response_id: Optional[str] = None
    transcript: str = ""


class ResponseTextDeltaEvent(ServerEvent):
    type: Literal["response.text.delta"]
    response_id: Optional[str] = None
    delta: str = ""


class ResponseTextDoneEvent(ServerEvent):
    type: Literal["response.text.done"]
    response_id: Optional[str] = None
    text: str = ""


class FunctionCallArgumentsDoneEvent(ServerEvent):
    type: Literal["response.function_call_arguments.done"]
    response_id: Optional[str] = None
    call_id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = "{}"


class ResponseDoneEvent(ServerEvent):
    type: Literal["response.done"]
    response: Dict[str, Any] = Field(default_factory=dict)


class ErrorEvent(ServerEvent):
    type: Literal["error"]
    error: ErrorDetail = Field(default_factory=ErrorDetail)


class RateLimitsUpdatedEvent(ServerEvent):
    type: Literal["rate_limits.updated"]
    rate_limits: List[Dict[str, Any]] = Field(default_factory=list)


EVENT_MODELS: Dict[str, Type[ServerEvent]] = {
    c.EVENT_SESSION_CREATED: SessionCreatedEvent,
    c.EVENT_SESSION_UPDATED: SessionUpdatedEvent,
    c.EVENT_SPEECH_STARTED: SpeechStartedEvent,
    c.EVENT_SPEECH_STOPPED: SpeechStoppedEvent,
    c.EVENT_AUDIO_BUFFER_COMMITTED: AudioBufferCommittedEvent,
    c.EVENT_CONVERSATION_ITEM_CREATED: ConversationItemCreatedEvent,
    c.EVENT_TRANSCRIPTION_DELTA: TranscriptionDeltaEvent,
    c.EVENT_TRANSCRIPTION_COMPLETED: TranscriptionCompletedEvent,
    c.EVENT_TRANSCRIPTION_FAILED: TranscriptionFailedEvent,
    c.EVENT_RESPONSE_CREATED: ResponseCreatedEvent,
    c.EVENT_RESPONSE_OUTPUT_ITEM_ADDED: ResponseOutputItemAddedEvent,
    c.EVENT_RESPONSE_CONTENT_PART_ADDED: ResponseContentPartAddedEvent,
    c.EVENT_RESPONSE_AUDIO_DELTA: ResponseAudioDeltaEvent,
    c.EVENT_RESPONSE_AUDIO_DONE: ResponseAudioDoneEvent,
    c.EVENT_RESPONSE_AUDIO_TRANSCRIPT_DELTA: ResponseAudioTranscriptDeltaEvent,
    c.EVENT_RESPONSE_AUDIO_TRANSCRIPT_DONE: ResponseAudioTranscriptDoneEvent,
    c.EVENT_RESPONSE_TEXT_DELTA: ResponseTextDeltaEvent,
    c.EVENT_RESPONSE_TEXT_DONE: ResponseTextDoneEvent,
    c.EVENT_RESPONSE_FUNCTION_CALL_ARGUMENTS_DONE: FunctionCallArgumentsDoneEvent,
    c.EVENT_RESPONSE_DONE: ResponseDoneEvent,
    c.EVENT_ERROR: ErrorEvent,
    c.EVENT_RATE_LIMITS_UPDATED: RateLimitsUpdatedEvent,
}


def parse_server_event(message: Union[str, bytes, Dict[str, Any]]) -> ServerEvent:
    """
    Parse a raw data channel message into its typed event model.

    Args:
        message: JSON text, bytes, or an already decoded dictionary

    Returns:
        The model registered for the message type, or a plain ``ServerEvent``
        for unknown types or payloads that fail validation.

    Raises:
        ValueError: If the message is not a JSON object with a string ``type``
    """
    if isinstance(message, (str, bytes)):
        data = json.loads(message)
    else:
        data = message

    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise ValueError("Server event must be a JSON object with a string 'type'")

    model = EVENT_MODELS.get(data["type"])
    if model is None:
        return ServerEvent(**data)

    try:
        return model(**data)
    except ValidationError as e:
        logger.warning(f"Malformed {data['type']} event: {e}")
        return ServerEvent(**data)
