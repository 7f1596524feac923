"""
Musical key estimation.

The primary engine is tried first. The fallback builds a 12-bin chroma
vector by correlating fixed-size windows of the signal with a sinusoid at
each pitch class's fundamental, then picks the tonic rotation and scale whose
Krumhansl-Kessler profile has the largest dot product with it.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from track_analyzer.config import Config
from track_analyzer.decoder import SampleBuffer
from track_analyzer.engine import EngineUnavailableError, EstimationStrategy, KeyEngine


logger = logging.getLogger(__name__)


PITCH_CLASSES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

# Flat spellings some engines report
ENHARMONIC = {
    'Db': 'C#', 'Eb': 'D#', 'Gb': 'F#', 'Ab': 'G#', 'Bb': 'A#',
}

SCALES = {'major': 'Major', 'minor': 'Minor'}

# Krumhansl-Kessler tonal profiles, tonic first
MAJOR_PROFILE = np.array([6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88])
MINOR_PROFILE = np.array([6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17])


@dataclass(frozen=True)
class KeyEstimate:
    """Key estimate with confidence."""

    key: str
    confidence: float
    strategy: EstimationStrategy


def pitch_class_frequency(pitch_class: int, reference: float = 440.0) -> float:
    """Fundamental of a pitch class in the A4 octave (pitch class 9 = A)."""
    return reference * 2.0 ** ((pitch_class - 9) / 12.0)


def compute_chroma(
    samples: np.ndarray,
    sample_rate: int,
    window_size: int = 4096,
    reference: float = 440.0,
) -> np.ndarray:
    """Correlation-energy chroma vector normalized by its maximum.

    Each complete window contributes ``sum(|x[i] * sin(2*pi*i*f/sr)|)`` per
    pitch class, with ``i`` restarting at zero in every window. A trailing
    partial window is ignored.

    Args:
        samples: Mono samples.
        sample_rate: Sample rate in Hz.
        window_size: Analysis window length in samples.
        reference: Frequency of pitch class 9 (A).

    Returns:
        Array of 12 values in [0, 1] (all zeros for silence).
    """
    chroma = np.zeros(12, dtype=np.float64)
    n_windows = len(samples) // window_size
    if n_windows == 0:
        return chroma

    windows = samples[: n_windows * window_size].astype(np.float64).reshape(n_windows, window_size)
    index = np.arange(window_size, dtype=np.float64)

    for pc in range(12):
        period = sample_rate / pitch_class_frequency(pc, reference)
        sinusoid = np.sin(2.0 * np.pi * index / period)
        chroma[pc] = np.abs(windows * sinusoid).sum()

    peak = chroma.max()
    if peak > 0:
        chroma = chroma / peak

    return chroma


def match_key_profile(chroma: np.ndarray) -> Tuple[str, str, float]:
    """Pick the tonic and scale whose profile best matches ``chroma``.

    Rotations are scanned from C upwards, major before minor; ties keep the
    earlier candidate.

    Returns:
        Tuple of (pitch class name, "Major"/"Minor", score).
    """
    best_key = PITCH_CLASSES[0]
    best_scale = 'Major'
    best_score = -math.inf

    for tonic in range(12):
        rotated = np.roll(chroma, -tonic)

        major_score = float(np.dot(rotated, MAJOR_PROFILE))
        if major_score > best_score:
            best_key, best_scale, best_score = PITCH_CLASSES[tonic], 'Major', major_score

        minor_score = float(np.dot(rotated, MINOR_PROFILE))
        if minor_score > best_score:
            best_key, best_scale, best_score = PITCH_CLASSES[tonic], 'Minor', minor_score

    return best_key, best_scale, best_score


def normalize_key_name(key: str, scale: str) -> str:
    """Map an engine's key/scale naming to "<PitchClass> <Major|Minor>".

    Raises:
        ValueError: If either part is not recognised.
    """
    pitch = key.strip()
    pitch = ENHARMONIC.get(pitch, pitch)
    if pitch not in PITCH_CLASSES:
        raise ValueError(f"Unrecognised pitch class: {key!r}")

    mode = SCALES.get(scale.strip().lower())
    if mode is None:
        raise ValueError(f"Unrecognised scale: {scale!r}")

    return f"{pitch} {mode}"


class KeyEstimator:
    """Estimator for track key."""

    def __init__(self, config: Optional[Config] = None):
        """Initialize key estimator.

        Args:
            config: Configuration object.
        """
        self.config = config or Config()

        self.window_size = self.config.get("key.window_size", 4096)
        self.reference_frequency = self.config.get("key.reference_frequency", 440.0)
        self.default_engine_confidence = self.config.get("key.default_engine_confidence", 0.8)
        self.heuristic_confidence = self.config.get("key.heuristic_confidence", 0.5)

    def estimate(self, buffer: SampleBuffer, engine: Optional[KeyEngine] = None) -> KeyEstimate:
        """Estimate key, falling back to the chroma heuristic on engine failure.

        Args:
            buffer: Resampled mono buffer.
            engine: Primary key engine, if any.

        Returns:
            KeyEstimate. Never raises for engine errors.
        """
        if engine is not None:
            try:
                return self.estimate_with_engine(buffer, engine)
            except EngineUnavailableError:
                logger.debug("No key engine, using chroma heuristic")
            except Exception as e:
                logger.warning(f"Engine key estimation failed, using heuristic: {e}")

        return self.estimate_heuristic(buffer)

    def estimate_with_engine(self, buffer: SampleBuffer, engine: KeyEngine) -> KeyEstimate:
        """Estimate key with the primary engine; strength becomes confidence."""
        raw = engine.estimate_key(buffer.samples, buffer.sample_rate)
        key = normalize_key_name(raw.key, raw.scale)

        confidence = self.default_engine_confidence
        if raw.strength and math.isfinite(raw.strength):
            confidence = min(1.0, max(0.0, float(raw.strength)))

        logger.debug(f"Engine key: {raw.key} {raw.scale} -> {key} ({confidence:.2f})")

        return KeyEstimate(key=key, confidence=confidence, strategy=EstimationStrategy.ENGINE)

    def estimate_heuristic(self, buffer: SampleBuffer) -> KeyEstimate:
        """Estimate key by tonal-profile matching of the chroma vector."""
        chroma = compute_chroma(
            buffer.samples,
            buffer.sample_rate,
            window_size=self.window_size,
            reference=self.reference_frequency,
        )
        pitch, mode, score = match_key_profile(chroma)

        logger.debug(f"Heuristic key: {pitch} {mode} (score={score:.3f})")

        return KeyEstimate(
            key=f"{pitch} {mode}",
            confidence=self.heuristic_confidence,
            strategy=EstimationStrategy.HEURISTIC,
        )
