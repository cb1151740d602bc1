"""Short beeps that mark recording start and the auto-stop deadline."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

SIGNAL_SAMPLE_RATE = 44100
MAX_REPEATS = 4
REPEAT_INTERVAL_S = 0.5


def make_tone(
    freq_hz: float = 880.0,
    duration_s: float = 0.12,
    sample_rate: int = SIGNAL_SAMPLE_RATE,
    volume: float = 0.3,
) -> Any:
    """Sine burst with a fast attack and exponential decay, as float32."""
    t = np.linspace(0, duration_s, int(sample_rate * duration_s), False)
    envelope = np.exp(-t * 20) * (1 - np.exp(-t * 100))
    return (np.sin(2 * np.pi * freq_hz * t) * envelope * volume).astype(np.float32)


class AudioSignal:
    def __init__(
        self,
        enabled: bool = True,
        sample_rate: int = SIGNAL_SAMPLE_RATE,
        repeat_interval_s: float = REPEAT_INTERVAL_S,
        background: bool = True,
    ) -> None:
        self.enabled = enabled
        self._sample_rate = sample_rate
        self._repeat_interval_s = repeat_interval_s
        self._background = background
        self._tone: Any = None

    def play(self, times: int = 1) -> None:
        """Beep ``times`` times (clamped to 1..4); never blocks the caller."""
        if not self.enabled:
            return
        if sd is None or np is None:
            logger.debug("Audio signal skipped: sounddevice or numpy missing")
            return
        times = max(1, min(MAX_REPEATS, int(times)))
        if not self._background:
            self._play_sync(times)
            return
        threading.Thread(
            target=self._play_sync,
            args=(times,),
            name="audio-signal",
            daemon=True,
        ).start()

    def _play_sync(self, times: int) -> None:
        if self._tone is None:
            self._tone = make_tone(sample_rate=self._sample_rate)
        for i in range(times):
            if i:
                time.sleep(self._repeat_interval_s)
            try:
                sd.play(self._tone, self._sample_rate)
            except Exception as exc:
                logger.debug("Could not play audio signal: %s", exc)
                return
