from __future__ import annotations

import asyncio
import builtins
import threading
import time

import numpy as np
import pytest

from vibecoding_client.tone import (
    SAMPLE_RATE_HZ,
    TONE_PEAK_GAIN,
    SoundDeviceSink,
    synthesize_tone,
)


def test_tone_length_and_dtype() -> None:
    samples = synthesize_tone()
    assert samples.dtype == np.float32
    assert len(samples) == round(SAMPLE_RATE_HZ * 0.030)


def test_envelope_rises_then_falls_to_silence() -> None:
    samples = synthesize_tone()
    attack = round(SAMPLE_RATE_HZ * 0.005)
    assert samples[0] == 0.0
    assert abs(samples[-1]) < 1e-3
    assert np.max(np.abs(samples)) <= TONE_PEAK_GAIN + 1e-6
    # Peak energy sits just after the attack, not at the edges.
    peak_index = int(np.argmax(np.abs(samples)))
    assert attack // 2 < peak_index < len(samples) - attack


def test_tone_frequency_is_50hz() -> None:
    sample_rate = 8000
    samples = synthesize_tone(sample_rate=sample_rate, duration_s=1.0, attack_s=0.5)
    spectrum = np.abs(np.fft.rfft(samples))
    freqs = np.fft.rfftfreq(len(samples), d=1.0 / sample_rate)
    assert freqs[int(np.argmax(spectrum))] == pytest.approx(50.0, abs=1.0)


@pytest.mark.asyncio
async def test_sink_without_backend_stays_silent(monkeypatch) -> None:
    real_import = builtins.__import__

    def _fake_import(name, *args, **kwargs):
        if name == "sounddevice":
            raise ImportError("no sounddevice")
        return real_import(name, *args, **kwargs)

    monkeypatch.setattr(builtins, "__import__", _fake_import)
    sink = SoundDeviceSink()
    assert sink.arm() is False
    assert sink.armed is False
    await sink.play(synthesize_tone())
    assert sink.play_count == 0


class _SlowDevice:
    """Stands in for the ``sounddevice`` module; records overlapping playback."""

    def __init__(self, duration_s: float = 0.05):
        self.duration_s = duration_s
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.calls = 0

    def play(self, samples, samplerate, blocking) -> None:
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(self.duration_s)
        with self._lock:
            self.active -= 1


@pytest.mark.asyncio
async def test_overlapping_tones_never_share_the_stream() -> None:
    device = _SlowDevice()
    sink = SoundDeviceSink()
    sink._sd = device
    samples = synthesize_tone()

    await asyncio.gather(*(sink.play(samples) for _ in range(3)))
    assert device.max_active == 1
    assert sink.play_count == 1
    assert sink.skipped_count == 2

    await sink.play(samples)
    assert sink.play_count == 2
    assert device.calls == 2
