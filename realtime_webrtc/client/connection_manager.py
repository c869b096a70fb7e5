"""
Connection manager for the OpenAI Realtime API over WebRTC.

The ``ConnectionManager`` owns the whole session lifecycle: fetching an
ephemeral credential from the token broker, creating the aiortc peer
connection and ``oai-events`` data channel, negotiating SDP, sending the
session configuration once the channel opens, routing inbound events through
the dispatcher, attaching the microphone, and tearing everything down again.

States::

    IDLE -> CONNECTING -> AWAITING_ANSWER -> CONNECTED -> VOICE_ACTIVE / VOICE_INACTIVE
         -> DISCONNECTING -> IDLE

A failed attempt passes through FAILED and always ends in IDLE. Reconnects
are never automatic; the caller decides when to retry and the backoff policy
decides whether that retry is allowed yet.
"""

import asyncio
import json
import logging
import math
import traceback
from typing import Any, Callable, Dict, List, Optional

from aiortc import RTCConfiguration, RTCIceServer, RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaBlackhole

from realtime_webrtc.client.backoff import AttemptWindow, BackoffPolicy
from realtime_webrtc.client.dispatcher import (
    DisconnectIntent,
    EmotionIntent,
    ErrorIntent,
    Intent,
    RateLimitIntent,
    SendIntent,
    StatusIntent,
    TranscriptIntent,
    dispatch,
)
from realtime_webrtc.client.errors import (
    DataChannelError,
    MicrophoneError,
    RealtimeClientError,
    is_rate_limit_signature,
)
from realtime_webrtc.client.listener import LoggingListener, SessionListener
from realtime_webrtc.client.session_config import build_session_update, build_token_request
from realtime_webrtc.client.visualizer import SpectrumVisualizer
from realtime_webrtc.config.constants import (
    DATA_CHANNEL_LABEL,
    DATA_CHANNEL_OPEN_TIMEOUT,
    LOGGER_NAME,
    NETWORK_TIMEOUT,
    STUN_SERVER_URL,
    VISUALIZER_INTERVAL,
)
from realtime_webrtc.config.variants import get_variant
from realtime_webrtc.models.events import parse_server_event
from realtime_webrtc.models.session import (
    ActivityStatus,
    ConnectionAttemptResult,
    ConnectionState,
    SessionState,
)
from realtime_webrtc.models.settings import Settings
from realtime_webrtc.services.negotiation import SdpNegotiator
from realtime_webrtc.services.token_broker import TokenBrokerClient

logger = logging.getLogger(LOGGER_NAME)

# Process-wide attempt history shared by every manager in this process
attempt_window = AttemptWindow()


class AttemptAbandoned(Exception):
    """Raised inside a connection attempt that was superseded by disconnect()."""


def default_peer_connection() -> RTCPeerConnection:
    return RTCPeerConnection(
        RTCConfiguration(iceServers=[RTCIceServer(urls=STUN_SERVER_URL)])
    )


def default_microphone():
    # PyAudio is only needed once the user turns the microphone on
    try:
        from realtime_webrtc.client.microphone import Microphone
    except ImportError as e:
        raise MicrophoneError(
            f"Audio capture is not installed ({e}); install the 'audio' extra"
        ) from e

    return Microphone()


class ConnectionManager:
    """
    Owns one realtime session at a time.

    Every failure is caught at the boundary of the operation that raised it,
    logged, and reported once through ``listener.on_error``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        listener: Optional[SessionListener] = None,
        token_broker: Optional[TokenBrokerClient] = None,
        negotiator: Optional[SdpNegotiator] = None,
        backoff: Optional[BackoffPolicy] = None,
        identity: str = "local",
        attempts: Optional[AttemptWindow] = None,
        peer_connection_factory: Callable[[], Any] = default_peer_connection,
        microphone_factory: Callable[[], Any] = default_microphone,
        network_timeout: float = NETWORK_TIMEOUT,
        open_timeout: float = DATA_CHANNEL_OPEN_TIMEOUT,
        visualizer_interval: float = VISUALIZER_INTERVAL,
    ):
        variant = get_variant()
        self.session = SessionState(settings=settings or variant.default_settings())
        self.listener = listener or LoggingListener()
        self.token_broker = token_broker or TokenBrokerClient()
        self.negotiator = negotiator or SdpNegotiator(model=variant.model)
        self.backoff = backoff or BackoffPolicy()
        self.identity = identity
        self.attempts = attempts or attempt_window
        self.peer_connection_factory = peer_connection_factory
        self.microphone_factory = microphone_factory
        self.network_timeout = network_timeout
        self.open_timeout = open_timeout
        self.visualizer_interval = visualizer_interval

        self.pc = None
        self.channel = None
        self.transceiver = None
        self.microphone = None
        self.visualizer: Optional[SpectrumVisualizer] = None
        self.audio_sink: Optional[MediaBlackhole] = None

        self._in_flight = False
        self._closing = False
        self._config_sent = False
        self._generation = 0
        self._channel_open: Optional[asyncio.Event] = None
        self._disconnect_task: Optional[asyncio.Task] = None
        self._background: List[asyncio.Task] = []

    @property
    def state(self) -> ConnectionState:
        return self.session.connection_state

    @property
    def settings(self) -> Settings:
        return self.session.settings

    @property
    def is_connected(self) -> bool:
        return self.session.is_connected

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    # Listener plumbing

    def _notify(self, method: str, *args) -> None:
        try:
            getattr(self.listener, method)(*args)
        except Exception as e:
            logger.error(f"Error in listener {method}: {e}")
            logger.debug(traceback.format_exc())

    def _set_state(self, state: ConnectionState) -> None:
        if self.session.connection_state == state:
            return
        logger.debug(f"Connection state: {self.session.connection_state.value} -> {state.value}")
        self.session.connection_state = state
        self._notify("on_status_change", state, self.session.status)

    def _report_error(self, message: str) -> None:
        logger.error(message)
        self._notify("on_error", message)

    # Connecting

    async def connect(self) -> ConnectionAttemptResult:
        """
        Start a connection attempt.

        Returns:
            ConnectionAttemptResult describing success, rejection (with the
            remaining wait in ``retry_after``) or failure
        """
        if self._in_flight:
            logger.warning("Connection already in progress")
            return ConnectionAttemptResult(
                success=False, rejected=True, error="Connection already in progress"
            )
        if self.state != ConnectionState.IDLE:
            logger.warning(f"Cannot connect while {self.state.value}")
            return ConnectionAttemptResult(
                success=False, rejected=True, error=f"Cannot connect while {self.state.value}"
            )

        remaining = self.backoff.remaining()
        if remaining > 0:
            message = (
                f"Please wait {math.ceil(remaining)} seconds before reconnecting "
                f"(consecutive failures: {self.backoff.consecutive_failures})"
            )
            logger.warning(message)
            self._notify("on_error", message)
            return ConnectionAttemptResult(
                success=False,
                rejected=True,
                retry_after=remaining,
                error=message,
                rate_limited=self.backoff.rate_limit_delay > 0,
            )

        self.backoff.mark_attempt()
        self._in_flight = True
        self._generation += 1
        generation = self._generation
        try:
            await self._negotiate(generation)
        except Exception as e:
            if isinstance(e, AttemptAbandoned) or generation != self._generation:
                logger.info("Connection attempt abandoned")
                return ConnectionAttemptResult(success=False, error="Connection attempt abandoned")
            return await self._handle_attempt_error(e)
        finally:
            self._in_flight = False

        logger.info("WebRTC connection established")
        return ConnectionAttemptResult(success=True)

    async def _handle_attempt_error(self, error: Exception) -> ConnectionAttemptResult:
        if isinstance(error, RealtimeClientError):
            return await self._fail_attempt(error.message, error.rate_limited)
        if isinstance(error, asyncio.TimeoutError):
            return await self._fail_attempt(
                f"Timed out after {self.network_timeout:.0f}s", rate_limited=False
            )
        logger.debug(f"Connection error details: {traceback.format_exc()}")
        return await self._fail_attempt(str(error), is_rate_limit_signature(str(error)))

    def _check_current(self, generation: int) -> None:
        if generation != self._generation or self._closing:
            raise AttemptAbandoned()

    async def _negotiate(self, generation: int) -> None:
        self._set_state(ConnectionState.CONNECTING)
        logger.info("Starting connection to OpenAI Realtime API")

        credential = await asyncio.wait_for(
            self.token_broker.fetch_credential(build_token_request(self.settings)),
            timeout=self.network_timeout,
        )
        self._check_current(generation)

        logger.info("Creating WebRTC peer connection")
        self._config_sent = False
        self._channel_open = asyncio.Event()
        self.pc = self.peer_connection_factory()
        self._register_peer_handlers(self.pc)

        # Pre-negotiated audio transceiver; the microphone track is attached later
        self.transceiver = self.pc.addTransceiver("audio", direction="sendrecv")

        self.channel = self.pc.createDataChannel(DATA_CHANNEL_LABEL)
        self._register_channel_handlers(self.channel)

        offer = await asyncio.wait_for(self.pc.createOffer(), timeout=self.network_timeout)
        await asyncio.wait_for(self.pc.setLocalDescription(offer), timeout=self.network_timeout)
        self._check_current(generation)

        self._set_state(ConnectionState.AWAITING_ANSWER)
        answer_sdp = await asyncio.wait_for(
            self.negotiator.exchange(self.pc.localDescription.sdp, credential.value),
            timeout=self.network_timeout,
        )
        self._check_current(generation)

        await asyncio.wait_for(
            self.pc.setRemoteDescription(RTCSessionDescription(sdp=answer_sdp, type="answer")),
            timeout=self.network_timeout,
        )
        self._check_current(generation)

        try:
            await asyncio.wait_for(self._channel_open.wait(), timeout=self.open_timeout)
        except asyncio.TimeoutError:
            raise DataChannelError("Data channel did not open in time")
        self._check_current(generation)

        if not self.is_connected:
            raise DataChannelError("Data channel closed before opening")

    async def _fail_attempt(self, reason: str, rate_limited: bool) -> ConnectionAttemptResult:
        self.backoff.record_failure()
        if rate_limited:
            self.backoff.record_rate_limit()
        self.attempts.record(self.identity, "rate_limited" if rate_limited else "failed")

        self._set_state(ConnectionState.FAILED)
        await self._teardown()
        self.session.reset()
        self._set_state(ConnectionState.IDLE)

        message = f"Connection failed: {reason}"
        self._report_error(message)
        return ConnectionAttemptResult(
            success=False,
            error=message,
            rate_limited=rate_limited,
            retry_after=self.backoff.remaining(),
        )

    # Peer connection and data channel events

    def _register_peer_handlers(self, pc) -> None:
        @pc.on("track")
        def on_track(track):
            logger.info(f"Received AI {track.kind} stream")
            if track.kind == "audio":
                self.audio_sink = MediaBlackhole()
                self.audio_sink.addTrack(track)
                self._spawn(self.audio_sink.start())

        @pc.on("connectionstatechange")
        def on_connectionstatechange():
            logger.info(f"Peer connection state: {pc.connectionState}")
            if pc.connectionState == "failed" and self.is_connected and not self._closing:
                self._on_channel_error(DataChannelError("Peer connection failed"))

    def _register_channel_handlers(self, channel) -> None:
        @channel.on("open")
        def on_open():
            self._on_channel_open()

        @channel.on("message")
        def on_message(message):
            self.handle_message(message)

        @channel.on("close")
        def on_close():
            self._on_channel_close()

        @channel.on("error")
        def on_error(error):
            self._on_channel_error(error)

    def _on_channel_open(self) -> None:
        if self._closing or not self._in_flight:
            return
        logger.info("Data channel opened")
        self.backoff.record_success()
        self.attempts.record(self.identity, "connected")
        self.session.status = ActivityStatus.LISTENING
        self._set_state(ConnectionState.CONNECTED)
        # The configuration must be the first outbound message
        self._send_session_update()
        if self._channel_open is not None:
            self._channel_open.set()

    def _on_channel_close(self) -> None:
        if self._closing:
            return
        if self.is_connected:
            logger.warning("Data channel closed")
            self.schedule_disconnect("Data channel closed")
        elif self._channel_open is not None:
            # Wake up a pending connect() so it fails instead of timing out
            self._channel_open.set()

    def _on_channel_error(self, error) -> None:
        if self._closing:
            return
        logger.error(f"Data channel error: {error}")
        if not self.is_connected:
            if self._channel_open is not None:
                self._channel_open.set()
            return
        self.backoff.record_failure()
        self._notify("on_error", "Data channel error occurred")
        self.schedule_disconnect("Data channel error")

    # Inbound events

    def handle_message(self, message) -> None:
        """Process one data channel message in arrival order."""
        try:
            event = parse_server_event(message)
        except ValueError as e:
            logger.warning(f"Invalid server message: {e}")
            return

        logger.debug(f"Received: {event.type}")
        try:
            result = dispatch(self.session, event)
        except Exception as e:
            # The session state is left as it was before this event
            logger.error(f"Error handling {event.type}: {e}")
            logger.debug(traceback.format_exc())
            return
        self.session = result.state
        self._apply_intents(result.intents)

    def _apply_intents(self, intents: List[Intent]) -> None:
        for intent in intents:
            if isinstance(intent, StatusIntent):
                self._notify("on_status_change", self.state, intent.status)
            elif isinstance(intent, TranscriptIntent):
                self._notify("on_transcript_update", self.session.transcript(intent.side))
            elif isinstance(intent, ErrorIntent):
                self._notify("on_error", intent.message)
            elif isinstance(intent, RateLimitIntent):
                self.backoff.record_rate_limit()
                self.attempts.record(self.identity, "rate_limited")
            elif isinstance(intent, DisconnectIntent):
                logger.warning(f"Disconnecting to prevent further issues: {intent.reason}")
                self.schedule_disconnect(intent.reason)
            elif isinstance(intent, EmotionIntent):
                self._notify("on_emotion", intent.expression)
            elif isinstance(intent, SendIntent):
                self.send_event(intent.message)

    # Outbound events

    def _send_raw(self, message: Dict[str, Any]) -> bool:
        if self.channel is None or self.channel.readyState != "open":
            logger.warning("Data channel not ready")
            return False
        self.channel.send(json.dumps(message))
        return True

    def _send_session_update(self) -> bool:
        logger.info(
            f"Sending session configuration: voice={self.settings.voice}, "
            f"VAD={self.settings.vad_mode.value}, "
            f"transcription={self.settings.transcription_model}, "
            f"noise={self.settings.noise_reduction.value}"
        )
        if self._send_raw(build_session_update(self.settings)):
            self._config_sent = True
            return True
        return False

    def send_event(self, message: Dict[str, Any]) -> bool:
        """Send a client event. Refused until the session configuration went out."""
        if not self._config_sent:
            logger.warning(f"Session not configured yet, dropping {message.get('type')}")
            return False
        return self._send_raw(message)

    def update_settings(self, **changes) -> Settings:
        """
        Replace settings and re-send the configuration while connected.

        Raises:
            pydantic.ValidationError: If a changed value is invalid
        """
        self.session.settings = self.settings.with_changes(**changes)
        logger.info(f"Settings updated: {changes}")
        if self.is_connected:
            self._send_session_update()
        return self.session.settings

    def clear_transcripts(self) -> None:
        self.session.user_transcript.clear()
        self.session.ai_transcript.clear()
        logger.info("Chat history cleared")
        self._notify("on_transcript_update", self.session.user_transcript)
        self._notify("on_transcript_update", self.session.ai_transcript)

    # Microphone

    async def start_voice(self) -> bool:
        """Acquire the microphone and attach it to the peer connection."""
        if not self.is_connected:
            self._report_error("Please connect to AI first")
            return False
        if self.session.voice_active:
            return True

        try:
            microphone = self.microphone_factory()
            track = await asyncio.to_thread(microphone.acquire)
        except MicrophoneError as e:
            self._report_error(f"Voice setup failed: {e.message}")
            return False

        if not self.is_connected:
            # Disconnected while the device was opening
            await microphone.release()
            return False

        self.microphone = microphone
        self.transceiver.sender.replaceTrack(track)
        self.visualizer = SpectrumVisualizer(
            microphone.sample_spectrum,
            lambda magnitudes: self._notify("on_spectrum", magnitudes),
            interval=self.visualizer_interval,
        )
        self.visualizer.start()
        self.session.voice_active = True
        self._set_state(ConnectionState.VOICE_ACTIVE)
        logger.info("Voice input activated")
        return True

    async def stop_voice(self) -> None:
        if not self.session.voice_active:
            return
        await self._stop_media()
        self.session.voice_active = False
        if self.is_connected:
            self._set_state(ConnectionState.VOICE_INACTIVE)
        logger.info("Voice input stopped")

    async def _stop_media(self) -> None:
        if self.visualizer is not None:
            await self.visualizer.stop()
            self.visualizer = None
        if self.transceiver is not None:
            self.transceiver.sender.replaceTrack(None)
        if self.microphone is not None:
            await self.microphone.release()
            self.microphone = None

    # Disconnecting

    def schedule_disconnect(self, reason: str) -> Optional[asyncio.Task]:
        """Run the disconnect path on the next loop iteration."""
        if self._disconnect_task is not None and not self._disconnect_task.done():
            return self._disconnect_task
        logger.info(f"Scheduling disconnect: {reason}")
        self._disconnect_task = asyncio.ensure_future(self.disconnect())
        return self._disconnect_task

    async def disconnect(self) -> None:
        """Tear down media, data channel and peer connection from any state."""
        if self._closing:
            return
        if self.state == ConnectionState.IDLE and self.pc is None and not self._in_flight:
            return

        self._closing = True
        # Invalidate any attempt still waiting on the network
        self._generation += 1
        try:
            logger.info("Disconnecting")
            self._set_state(ConnectionState.DISCONNECTING)
            await self._teardown()
            self.session.reset()
            self._set_state(ConnectionState.IDLE)
            logger.info("Disconnected successfully")
        finally:
            self._closing = False

    async def _teardown(self) -> None:
        was_closing = self._closing
        self._closing = True
        try:
            await self._stop_media()
            if self.channel is not None:
                try:
                    self.channel.close()
                except Exception as e:
                    logger.warning(f"Error closing data channel: {e}")
            if self.audio_sink is not None:
                await self.audio_sink.stop()
            if self.pc is not None:
                try:
                    await self.pc.close()
                except Exception as e:
                    logger.warning(f"Error closing peer connection: {e}")
            for task in self._background:
                task.cancel()
        finally:
            self._background = []
            self.channel = None
            self.pc = None
            self.transceiver = None
            self.audio_sink = None
            self._config_sent = False
            self._channel_open = None
            self._closing = was_closing

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._background.append(task)
