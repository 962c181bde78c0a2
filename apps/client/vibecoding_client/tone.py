"""Low-frequency "thump" synthesis and a lazily armed audio sink."""

from __future__ import annotations

import asyncio
import logging

import numpy as np

LOGGER = logging.getLogger(__name__)

SAMPLE_RATE_HZ = 44_100
TONE_FREQ_HZ = 50.0
TONE_DURATION_S = 0.030
TONE_PEAK_GAIN = 0.5
TONE_ATTACK_S = 0.005


def synthesize_tone(
    sample_rate: int = SAMPLE_RATE_HZ,
    freq_hz: float = TONE_FREQ_HZ,
    duration_s: float = TONE_DURATION_S,
    peak_gain: float = TONE_PEAK_GAIN,
    attack_s: float = TONE_ATTACK_S,
) -> np.ndarray:
    """Return a mono float32 sine burst with a linear attack/release envelope.

    Gain ramps 0 -> *peak_gain* over *attack_s*, then back to 0 over the
    remaining duration.
    """
    n_samples = max(1, int(round(sample_rate * duration_s)))
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    wave = np.sin(2.0 * np.pi * freq_hz * t)

    attack_samples = min(n_samples, max(1, int(round(sample_rate * attack_s))))
    envelope = np.empty(n_samples, dtype=np.float64)
    envelope[:attack_samples] = np.linspace(0.0, peak_gain, attack_samples, endpoint=False)
    release = n_samples - attack_samples
    if release > 0:
        envelope[attack_samples:] = np.linspace(peak_gain, 0.0, release)
    return (wave * envelope).astype(np.float32)


class SoundDeviceSink:
    """Plays sample buffers through ``sounddevice`` once armed.

    Arming imports the backend lazily; a missing package or an unusable audio
    device leaves the sink unarmed, and every later :meth:`play` is a no-op.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE_HZ):
        self.sample_rate = sample_rate
        self._sd = None
        self._playing = asyncio.Lock()
        self.play_count = 0
        self.skipped_count = 0

    @property
    def armed(self) -> bool:
        return self._sd is not None

    def arm(self) -> bool:
        if self._sd is not None:
            return True
        try:
            import sounddevice as sd

            sd.check_output_settings(samplerate=self.sample_rate, channels=1)
        except Exception as exc:
            # ImportError, OSError or PortAudioError from a missing or busy device.
            LOGGER.info("Audio output unavailable; tone channel disabled (%s)", exc)
            return False
        self._sd = sd
        return True

    async def play(self, samples: np.ndarray) -> None:
        """Play *samples*; dropped while the previous tone is still sounding."""
        if self._sd is None:
            return
        if self._playing.locked():
            # sounddevice.play() drives one shared output stream.
            self.skipped_count += 1
            return
        async with self._playing:
            await asyncio.to_thread(self._play_blocking, samples)
            self.play_count += 1

    def _play_blocking(self, samples: np.ndarray) -> None:
        self._sd.play(samples, samplerate=self.sample_rate, blocking=True)
