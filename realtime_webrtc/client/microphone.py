"""
Microphone capture.

``Microphone`` opens the default input device with PyAudio and exposes it as
an aiortc ``MediaStreamTrack`` that the connection manager attaches to the
peer connection. The most recent samples are kept so a ``SpectrumVisualizer``
can derive bar-chart magnitudes on a fixed cadence. The connection manager
never inspects the spectrum; it only flows to the listener.
"""

import asyncio
import fractions
import logging
from typing import Callable, List, Optional

import av
import numpy as np
import pyaudio
from aiortc import MediaStreamTrack
from aiortc.mediastreams import MediaStreamError
from pydantic import BaseModel

from realtime_webrtc.client.errors import MicrophoneError
from realtime_webrtc.client.visualizer import compute_spectrum
from realtime_webrtc.config.constants import (
    LOGGER_NAME,
    MIC_CHANNELS,
    MIC_FRAME_SAMPLES,
    MIC_SAMPLE_RATE,
    SPECTRUM_FFT_SIZE,
)

logger = logging.getLogger(LOGGER_NAME)

FORMAT = pyaudio.paInt16


class MicrophoneConstraints(BaseModel):
    """Requested capture settings."""
    sample_rate: int = MIC_SAMPLE_RATE
    channels: int = MIC_CHANNELS
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True


class MicrophoneStreamTrack(MediaStreamTrack):
    """MediaStreamTrack that captures audio from the microphone."""

    kind = "audio"

    def __init__(self, stream, constraints: MicrophoneConstraints,
                 on_samples: Optional[Callable[[np.ndarray], None]] = None):
        super().__init__()
        self.stream = stream
        self.constraints = constraints
        self.on_samples = on_samples
        self.timestamp = 0
        self._reading: Optional[asyncio.Future] = None

    async def recv(self):
        """Get the next frame from the microphone."""
        if self.readyState != "live":
            raise MediaStreamError

        reading = asyncio.ensure_future(asyncio.to_thread(
            self.stream.read, MIC_FRAME_SAMPLES, exception_on_overflow=False
        ))
        self._reading = reading
        # Cancelling recv must not hide a read that is still running in its thread
        data = await asyncio.shield(reading)
        if self.readyState != "live":
            raise MediaStreamError

        samples = np.frombuffer(data, np.int16)
        if self.on_samples:
            self.on_samples(samples)

        frame = av.AudioFrame.from_ndarray(
            samples.reshape(1, -1),
            format="s16",
            layout="mono" if self.constraints.channels == 1 else "stereo",
        )
        frame.sample_rate = self.constraints.sample_rate
        frame.pts = self.timestamp
        frame.time_base = fractions.Fraction(1, self.constraints.sample_rate)
        self.timestamp += MIC_FRAME_SAMPLES
        return frame

    async def wait_idle(self) -> None:
        """Wait until no device read is in flight."""
        reading = self._reading
        if reading is not None and not reading.done():
            await asyncio.wait([reading])
        if reading is not None and not reading.cancelled() and reading.exception() is not None:
            logger.debug(f"Last microphone read failed: {reading.exception()}")


class Microphone:
    """Owns the PyAudio stream behind a ``MicrophoneStreamTrack``."""

    def __init__(self, constraints: Optional[MicrophoneConstraints] = None):
        self.constraints = constraints or MicrophoneConstraints()
        self.track: Optional[MicrophoneStreamTrack] = None
        self._audio = None
        self._stream = None
        self._latest = np.zeros(SPECTRUM_FFT_SIZE, dtype=np.int16)

    @property
    def active(self) -> bool:
        return self.track is not None

    def acquire(self) -> MicrophoneStreamTrack:
        """
        Open the default input device.

        Returns:
            The outbound audio track

        Raises:
            MicrophoneError: If no input device is available or it cannot be opened
        """
        if self.track is not None:
            return self.track

        self._audio = pyaudio.PyAudio()
        try:
            device = self._audio.get_default_input_device_info()
            logger.info(f"Requesting microphone access: {device.get('name', 'default')}")
            self._stream = self._audio.open(
                format=FORMAT,
                channels=self.constraints.channels,
                rate=self.constraints.sample_rate,
                input=True,
                frames_per_buffer=MIC_FRAME_SAMPLES,
            )
        except OSError as e:
            self._audio.terminate()
            self._audio = None
            raise MicrophoneError(f"Microphone unavailable: {e}") from e

        self.track = MicrophoneStreamTrack(self._stream, self.constraints, self._store_samples)
        logger.info(
            f"Microphone initialized: {self.constraints.sample_rate}Hz, "
            f"{self.constraints.channels} channel(s), "
            f"echo_cancellation={self.constraints.echo_cancellation}, "
            f"noise_suppression={self.constraints.noise_suppression}, "
            f"auto_gain_control={self.constraints.auto_gain_control}"
        )
        return self.track

    def _store_samples(self, samples: np.ndarray) -> None:
        self._latest = np.concatenate([self._latest, samples])[-SPECTRUM_FFT_SIZE:]

    def sample_spectrum(self) -> List[int]:
        """Bar magnitudes for the most recent audio, one call per animation tick."""
        return compute_spectrum(self._latest)

    async def release(self) -> None:
        """
        Stop the track and close the input stream.

        PortAudio streams may not be closed while another thread is reading
        from them, so the pending read is awaited first.
        """
        track, self.track = self.track, None
        if track is not None:
            track.stop()
            await track.wait_idle()

        stream, self._stream = self._stream, None
        audio, self._audio = self._audio, None
        if stream is not None or audio is not None:
            await asyncio.to_thread(self._close_device, stream, audio)
        self._latest = np.zeros(SPECTRUM_FFT_SIZE, dtype=np.int16)
        logger.info("Microphone stopped")

    @staticmethod
    def _close_device(stream, audio) -> None:
        if stream is not None:
            stream.stop_stream()
            stream.close()
        if audio is not None:
            audio.terminate()
