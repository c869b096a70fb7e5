import json
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from realtime_webrtc.client.backoff import AttemptWindow, BackoffPolicy
from realtime_webrtc.client.connection_manager import ConnectionManager
from realtime_webrtc.models.settings import Settings
from realtime_webrtc.services.token_broker import EphemeralCredential


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class EventSource:
    """Minimal stand-in for the pyee emitter used by aiortc objects."""

    def __init__(self):
        self._handlers = {}

    def on(self, event, f=None):
        def register(handler):
            self._handlers.setdefault(event, []).append(handler)
            return handler

        if f is not None:
            return register(f)
        return register

    def emit(self, event, *args):
        for handler in list(self._handlers.get(event, [])):
            handler(*args)


class FakeDataChannel(EventSource):
    def __init__(self, label):
        super().__init__()
        self.label = label
        self.readyState = "connecting"
        self.sent = []

    def send(self, data):
        if self.readyState != "open":
            raise RuntimeError("data channel is not open")
        self.sent.append(json.loads(data))

    def open(self):
        self.readyState = "open"
        self.emit("open")

    def close(self):
        if self.readyState == "closed":
            return
        self.readyState = "closed"
        self.emit("close")


class FakePeerConnection(EventSource):
    """Peer connection that 'connects' as soon as the remote answer is applied."""

    def __init__(self, auto_open=True):
        super().__init__()
        self.auto_open = auto_open
        self.channel = None
        self.transceiver = None
        self.localDescription = None
        self.remoteDescription = None
        self.connectionState = "new"
        self.closed = False

    def addTransceiver(self, kind, direction="sendrecv"):
        self.transceiver = SimpleNamespace(
            kind=kind, direction=direction, sender=SimpleNamespace(replaceTrack=MagicMock())
        )
        return self.transceiver

    def createDataChannel(self, label):
        self.channel = FakeDataChannel(label)
        return self.channel

    async def createOffer(self):
        return SimpleNamespace(sdp="v=0 offer", type="offer")

    async def setLocalDescription(self, description):
        self.localDescription = description

    async def setRemoteDescription(self, description):
        self.remoteDescription = description
        self.connectionState = "connected"
        if self.auto_open:
            self.channel.open()

    async def close(self):
        self.closed = True
        self.connectionState = "closed"


class FakeMicrophone:
    def __init__(self, error=None):
        self.error = error
        self.track = MagicMock(kind="audio")
        self.released = False

    def acquire(self):
        if self.error is not None:
            raise self.error
        return self.track

    def sample_spectrum(self):
        return [0] * 24

    async def release(self):
        self.released = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def listener():
    return MagicMock()


@pytest.fixture
def token_broker():
    broker = MagicMock()
    broker.fetch_credential = AsyncMock(return_value=EphemeralCredential("ek_test", 1700000000))
    return broker


@pytest.fixture
def negotiator():
    negotiator = MagicMock()
    negotiator.exchange = AsyncMock(return_value="v=0 answer")
    return negotiator


@pytest.fixture
def peer_connections():
    """Every fake peer connection created by the manager under test."""
    return []


@pytest.fixture
def microphone():
    return FakeMicrophone()


@pytest.fixture
def make_manager(clock, listener, token_broker, negotiator, peer_connections, microphone):
    def factory(auto_open=True, settings=None, **kwargs):
        def create_peer_connection():
            pc = FakePeerConnection(auto_open=auto_open)
            peer_connections.append(pc)
            return pc

        options = dict(
            settings=settings or Settings(),
            listener=listener,
            token_broker=token_broker,
            negotiator=negotiator,
            backoff=BackoffPolicy(clock=clock),
            attempts=AttemptWindow(clock=clock),
            peer_connection_factory=create_peer_connection,
            microphone_factory=lambda: microphone,
            visualizer_interval=0.001,
        )
        options.update(kwargs)
        return ConnectionManager(**options)

    return factory
