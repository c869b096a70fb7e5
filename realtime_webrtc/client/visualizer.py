"""
Spectrum computation and the periodic visualization task.
"""

import asyncio
import logging
from typing import Callable, List, Optional

import numpy as np

from realtime_webrtc.config.constants import (
    LOGGER_NAME,
    SPECTRUM_BAR_COUNT,
    SPECTRUM_FFT_SIZE,
    SPECTRUM_MAX_DECIBELS,
    SPECTRUM_MIN_DECIBELS,
    VISUALIZER_INTERVAL,
)

logger = logging.getLogger(LOGGER_NAME)


def compute_spectrum(
    samples: np.ndarray,
    fft_size: int = SPECTRUM_FFT_SIZE,
    bar_count: int = SPECTRUM_BAR_COUNT,
    min_db: float = SPECTRUM_MIN_DECIBELS,
    max_db: float = SPECTRUM_MAX_DECIBELS,
) -> List[int]:
    """
    Compute bar magnitudes (0-255) from the most recent int16 samples.

    The last ``fft_size`` samples are windowed and transformed; each frequency
    bin is mapped linearly from [min_db, max_db] to [0, 255] and bins are
    averaged into ``bar_count`` bars.
    """
    block = np.zeros(fft_size, dtype=np.float64)
    tail = np.asarray(samples, dtype=np.float64)[-fft_size:] / 32768.0
    if len(tail):
        block[-len(tail):] = tail

    spectrum = np.abs(np.fft.rfft(block * np.blackman(fft_size)))[: fft_size // 2] / fft_size
    with np.errstate(divide="ignore"):
        decibels = 20 * np.log10(spectrum)
    scaled = (decibels - min_db) / (max_db - min_db) * 255
    byte_values = np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255)

    per_bar = max(1, len(byte_values) // bar_count)
    return [
        int(byte_values[i * per_bar:(i + 1) * per_bar].mean())
        for i in range(bar_count)
    ]


class SpectrumVisualizer:
    """Periodic task that samples a spectrum and hands it to a callback."""

    def __init__(self, sample: Callable[[], List[int]],
                 callback: Callable[[List[int]], None],
                 interval: float = VISUALIZER_INTERVAL):
        self.sample = sample
        self.callback = callback
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                self.callback(self.sample())
            except Exception as e:
                logger.warning(f"Visualizer tick failed: {e}")
            await asyncio.sleep(self.interval)
