"""
Shared fixtures and helpers for the test suite.
"""

import io
import threading

import numpy as np
import pytest
import soundfile as sf

from track_analyzer.config import Config
from track_analyzer.engine import EngineKey


def make_wav_bytes(samples: np.ndarray, sample_rate: int, subtype: str = "FLOAT") -> bytes:
    """Encode samples (frames,) or (frames, channels) as in-memory WAV."""
    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format="WAV", subtype=subtype)
    return buf.getvalue()


def click_track(bpm: float, sample_rate: int = 44100, duration: float = 6.0) -> np.ndarray:
    """Silence with a short decaying click on every beat."""
    y = np.zeros(int(sample_rate * duration), dtype=np.float32)
    interval = 60.0 / bpm
    click_length = int(0.01 * sample_rate)
    envelope = np.exp(-np.linspace(0, 5, click_length)).astype(np.float32)

    t = 0.0
    while True:
        start = int(t * sample_rate)
        if start + click_length >= len(y):
            break
        y[start:start + click_length] = envelope
        t += interval

    return y


class FakeEngine:
    """Primary engine double returning fixed values."""

    name = "fake"

    def __init__(self, bpm=128.0, key="A", scale="minor", strength=0.9):
        self.bpm = bpm
        self.key = key
        self.scale = scale
        self.strength = strength
        self.tempo_calls = 0
        self.key_calls = 0

    def estimate_bpm(self, samples, sample_rate):
        self.tempo_calls += 1
        return self.bpm

    def estimate_key(self, samples, sample_rate):
        self.key_calls += 1
        return EngineKey(key=self.key, scale=self.scale, strength=self.strength)


class FailingEngine:
    """Primary engine double whose estimators always raise."""

    name = "failing"

    def estimate_bpm(self, samples, sample_rate):
        raise RuntimeError("tempo algorithm crashed")

    def estimate_key(self, samples, sample_rate):
        raise RuntimeError("key algorithm crashed")


class CountingLoader:
    """Engine loader that counts calls and can block until released."""

    def __init__(self, engine=None, error=None, block=False):
        self.engine = engine if engine is not None else FakeEngine()
        self.error = error
        self.calls = 0
        self.release = threading.Event()
        if not block:
            self.release.set()

    def __call__(self):
        self.calls += 1
        self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.engine


@pytest.fixture
def config():
    """Configuration with the primary engine disabled."""
    config = Config()
    config.set("engine.backend", "none")
    return config
