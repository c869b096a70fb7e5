"""
Event dispatcher for inbound Realtime API events.

``dispatch`` is a pure function of the current session state and one server
event. It returns a new state together with a list of intents describing the
side effects the connection manager should carry out (notify the listener,
send a message, escalate backoff, disconnect). Events are routed by their
``type`` string; unmapped types are logged and otherwise ignored.
"""

import json
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from realtime_webrtc.client.emotions import FACE_EXPRESSION_TOOL, Expression, parse_expression
from realtime_webrtc.client.errors import (
    RealtimeClientError,
    ServerError,
    TranscriptionFailure,
)
from realtime_webrtc.config import constants as c
from realtime_webrtc.models.events import (
    EVENT_MODELS,
    ErrorEvent,
    FunctionCallArgumentsDoneEvent,
    ResponseCreatedEvent,
    ResponseDoneEvent,
    ServerEvent,
    TranscriptionCompletedEvent,
    TranscriptionDeltaEvent,
    TranscriptionFailedEvent,
    parse_server_event,
)
from realtime_webrtc.models.session import ActivityStatus, SessionState
from realtime_webrtc.models.transcript import TranscriptSide

logger = logging.getLogger(c.LOGGER_NAME)


# Intents
class StatusIntent(BaseModel):
    status: ActivityStatus


class TranscriptIntent(BaseModel):
    side: TranscriptSide


class ErrorIntent(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    message: str
    error: Optional[RealtimeClientError] = None


class RateLimitIntent(BaseModel):
    reason: str


class DisconnectIntent(BaseModel):
    reason: str


class EmotionIntent(BaseModel):
    expression: Expression


class SendIntent(BaseModel):
    message: Dict[str, Any]


Intent = Union[
    StatusIntent,
    TranscriptIntent,
    ErrorIntent,
    RateLimitIntent,
    DisconnectIntent,
    EmotionIntent,
    SendIntent,
]


class DispatchResult(BaseModel):
    state: SessionState
    intents: List[Intent] = Field(default_factory=list)


Handler = Callable[[SessionState, ServerEvent], List[Intent]]

RATE_LIMIT_NOTICE = "OpenAI rate limit reached - please wait a few minutes before reconnecting"

TRANSCRIPTION_FAILURE_MESSAGES = {
    TranscriptionFailure.AUDIO_TOO_QUIET: (
        "Audio too quiet",
        "Try speaking louder or moving closer to the microphone",
    ),
    TranscriptionFailure.AUDIO_UNCLEAR: (
        "Audio unclear",
        "Try speaking more clearly and reduce background noise",
    ),
    TranscriptionFailure.AUDIO_TOO_SHORT: (
        "Audio too short",
        "Try speaking for a longer duration",
    ),
    TranscriptionFailure.UNSUPPORTED_LANGUAGE: (
        "Language not supported",
        "Please speak in English",
    ),
}
DEFAULT_FAILURE_MESSAGE = (
    "Transcription failed",
    "Try speaking more clearly, louder, or check your microphone",
)


def _set_status(state: SessionState, status: ActivityStatus) -> List[Intent]:
    if state.status == status:
        return []
    state.status = status
    return [StatusIntent(status=status)]


def _rate_limited(state: SessionState, reason: str) -> List[Intent]:
    intents = _set_status(state, ActivityStatus.RATE_LIMITED)
    intents.append(RateLimitIntent(reason=reason))
    intents.append(DisconnectIntent(reason=reason))
    return intents


def _server_error(state: SessionState, message: str, code: Optional[str]) -> List[Intent]:
    error = ServerError(message, code=code)
    intents: List[Intent] = [ErrorIntent(message=f"Server error: {message}", error=error)]
    if error.rate_limited:
        intents.extend(_rate_limited(state, message))
    return intents


def _log_only(state: SessionState, event: ServerEvent) -> List[Intent]:
    logger.debug(f"Received {event.type}")
    return []


def handle_session_event(state: SessionState, event: ServerEvent) -> List[Intent]:
    if event.type == c.EVENT_SESSION_CREATED:
        logger.info("Session created successfully")
    else:
        logger.info("Session configuration updated")
    return []


def handle_speech_started(state: SessionState, event: ServerEvent) -> List[Intent]:
    state.user_transcript.open_live()
    intents = _set_status(state, ActivityStatus.USER_SPEAKING)
    intents.append(TranscriptIntent(side=TranscriptSide.USER))
    return intents


def handle_speech_stopped(state: SessionState, event: ServerEvent) -> List[Intent]:
    return _set_status(state, ActivityStatus.PROCESSING)


def handle_transcription_delta(state: SessionState, event: TranscriptionDeltaEvent) -> List[Intent]:
    if not event.delta:
        return []
    state.user_transcript.append_delta(event.delta)
    return [TranscriptIntent(side=TranscriptSide.USER)]


def _mean_confidence(event: TranscriptionCompletedEvent) -> Optional[float]:
    if not event.logprobs:
        return None
    return sum(math.exp(item.logprob) for item in event.logprobs) / len(event.logprobs)


def handle_transcription_completed(
    state: SessionState, event: TranscriptionCompletedEvent
) -> List[Intent]:
    confidence = None
    if state.settings.include_confidence:
        confidence = _mean_confidence(event)
        if confidence is not None:
            logger.info(f"Transcription confidence: {confidence * 100:.1f}%")
    entry = state.user_transcript.finalize(event.transcript, confidence=confidence)
    logger.info(f"User transcript: {entry.text if entry else ''}")
    return [TranscriptIntent(side=TranscriptSide.USER)]


def handle_transcription_failed(
    state: SessionState, event: TranscriptionFailedEvent
) -> List[Intent]:
    failure = TranscriptionFailure(
        event.error.code or TranscriptionFailure.UNKNOWN,
        event.error.message or "Transcription failed",
    )
    logger.error(f"Transcription failure details: {failure.reason} - {failure.message}")

    if failure.rate_limited:
        state.user_transcript.fail(RATE_LIMIT_NOTICE)
        intents: List[Intent] = [
            TranscriptIntent(side=TranscriptSide.USER),
            ErrorIntent(message=RATE_LIMIT_NOTICE, error=failure),
        ]
        intents.extend(_rate_limited(state, failure.message))
        return intents

    title, suggestion = TRANSCRIPTION_FAILURE_MESSAGES.get(failure.reason, DEFAULT_FAILURE_MESSAGE)
    notice = f"{title} - {suggestion}"
    state.user_transcript.fail(notice)
    intents = [
        TranscriptIntent(side=TranscriptSide.USER),
        ErrorIntent(message=notice, error=failure),
    ]
    intents.extend(_set_status(state, ActivityStatus.LISTENING))
    return intents


def handle_response_created(state: SessionState, event: ResponseCreatedEvent) -> List[Intent]:
    state.response_id = event.response_id
    state.ai_transcript.open_live()
    intents = _set_status(state, ActivityStatus.AI_THINKING)
    intents.append(TranscriptIntent(side=TranscriptSide.AI))
    return intents


def handle_response_delta(state: SessionState, event: ServerEvent) -> List[Intent]:
    if not event.delta:
        return []
    state.ai_transcript.append_delta(event.delta)
    intents = _set_status(state, ActivityStatus.AI_RESPONDING)
    intents.append(TranscriptIntent(side=TranscriptSide.AI))
    return intents


def handle_response_part_done(state: SessionState, event: ServerEvent) -> List[Intent]:
    text = getattr(event, "transcript", None) or getattr(event, "text", None)
    if state.ai_transcript.live_entry is None and not text:
        return []
    entry = state.ai_transcript.finalize(text)
    logger.info(f"AI transcript: {entry.text if entry else ''}")
    return [TranscriptIntent(side=TranscriptSide.AI)]


def handle_function_call(
    state: SessionState, event: FunctionCallArgumentsDoneEvent
) -> List[Intent]:
    intents: List[Intent] = []
    if event.name == FACE_EXPRESSION_TOOL:
        expression = parse_expression(event.arguments)
        intents.append(EmotionIntent(expression=expression))
        output = {"success": True, "emotion": expression.emotion.value}
    else:
        logger.warning(f"Model called unknown tool: {event.name}")
        output = {"success": False, "error": f"Unknown tool: {event.name}"}

    intents.append(SendIntent(message={
        "type": c.EVENT_CONVERSATION_ITEM_CREATE,
        "item": {
            "type": "function_call_output",
            "call_id": event.call_id,
            "output": json.dumps(output),
        },
    }))
    # A new response may only be requested once the current one is done
    state.pending_tool_output = True
    return intents


def handle_response_done(state: SessionState, event: ResponseDoneEvent) -> List[Intent]:
    intents: List[Intent] = []
    if state.ai_transcript.live_entry is not None:
        state.ai_transcript.finalize()
        intents.append(TranscriptIntent(side=TranscriptSide.AI))
    state.response_id = None

    if event.response.get("status") == "failed":
        details = event.response.get("status_details")
        error = details.get("error") if isinstance(details, dict) else None
        if not isinstance(error, dict):
            error = {}
        message = error.get("message") or "Response failed"
        intents.extend(_server_error(state, message, error.get("code") or error.get("type")))
        if state.status == ActivityStatus.RATE_LIMITED:
            return intents

    if state.pending_tool_output:
        state.pending_tool_output = False
        intents.append(SendIntent(message={"type": c.EVENT_RESPONSE_CREATE}))

    intents.extend(_set_status(state, ActivityStatus.LISTENING))
    return intents


def handle_error(state: SessionState, event: ErrorEvent) -> List[Intent]:
    message = event.error.message or "Unknown error"
    logger.error(f"Server error: {message}")
    return _server_error(state, message, event.error.code)


def handle_rate_limits_updated(state: SessionState, event: ServerEvent) -> List[Intent]:
    for limit in getattr(event, "rate_limits", []):
        logger.debug(
            f"Rate limit {limit.get('name')}: {limit.get('remaining')}/{limit.get('limit')} remaining"
        )
    return []


HANDLERS: Dict[str, Handler] = {
    c.EVENT_SESSION_CREATED: handle_session_event,
    c.EVENT_SESSION_UPDATED: handle_session_event,
    c.EVENT_SPEECH_STARTED: handle_speech_started,
    c.EVENT_SPEECH_STOPPED: handle_speech_stopped,
    c.EVENT_AUDIO_BUFFER_COMMITTED: _log_only,
    c.EVENT_CONVERSATION_ITEM_CREATED: _log_only,
    c.EVENT_TRANSCRIPTION_DELTA: handle_transcription_delta,
    c.EVENT_TRANSCRIPTION_COMPLETED: handle_transcription_completed,
    c.EVENT_TRANSCRIPTION_FAILED: handle_transcription_failed,
    c.EVENT_RESPONSE_CREATED: handle_response_created,
    c.EVENT_RESPONSE_OUTPUT_ITEM_ADDED: _log_only,
    c.EVENT_RESPONSE_CONTENT_PART_ADDED: _log_only,
    c.EVENT_RESPONSE_AUDIO_DELTA: _log_only,
    c.EVENT_RESPONSE_AUDIO_DONE: _log_only,
    c.EVENT_RESPONSE_AUDIO_TRANSCRIPT_DELTA: handle_response_delta,
    c.EVENT_RESPONSE_AUDIO_TRANSCRIPT_DONE: handle_response_part_done,
    c.EVENT_RESPONSE_TEXT_DELTA: handle_response_delta,
    c.EVENT_RESPONSE_TEXT_DONE: handle_response_part_done,
    c.EVENT_RESPONSE_FUNCTION_CALL_ARGUMENTS_DONE: handle_function_call,
    c.EVENT_RESPONSE_DONE: handle_response_done,
    c.EVENT_ERROR: handle_error,
    c.EVENT_RATE_LIMITS_UPDATED: handle_rate_limits_updated,
}


def dispatch(
    state: SessionState, event: Union[ServerEvent, Dict[str, Any], str]
) -> DispatchResult:
    """
    Apply one server event to a copy of the session state.

    Args:
        state: Current session state (left untouched)
        event: Parsed event, decoded dictionary or raw JSON text

    Returns:
        DispatchResult with the new state and the side-effect intents
    """
    if not isinstance(event, ServerEvent):
        event = parse_server_event(event)

    new_state = state.model_copy(deep=True)
    handler = HANDLERS.get(event.type)
    if handler is None:
        logger.warning(f"Unknown message type: {event.type}")
        return DispatchResult(state=new_state)

    model = EVENT_MODELS.get(event.type)
    if model is not None and not isinstance(event, model):
        logger.warning(f"Ignoring malformed {event.type} event")
        return DispatchResult(state=new_state)

    intents = handler(new_state, event)
    return DispatchResult(state=new_state, intents=intents)
