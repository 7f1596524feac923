"""
Tempo (BPM) estimation.

The primary engine is tried first; when it is absent or fails, a
peak-interval heuristic over chunk RMS energies takes over.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from track_analyzer.config import Config
from track_analyzer.decoder import SampleBuffer
from track_analyzer.engine import EngineUnavailableError, EstimationStrategy, TempoEngine


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TempoEstimate:
    """Tempo estimate with confidence."""

    bpm: int
    confidence: float
    strategy: EstimationStrategy


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def chunk_energies(samples: np.ndarray, chunk_size: int) -> np.ndarray:
    """RMS energy of each complete ``chunk_size`` block of samples.

    A trailing partial chunk is ignored.
    """
    n_chunks = len(samples) // chunk_size
    if n_chunks == 0:
        return np.zeros(0, dtype=np.float64)

    chunks = samples[: n_chunks * chunk_size].astype(np.float64).reshape(n_chunks, chunk_size)
    return np.sqrt(np.mean(chunks * chunks, axis=1))


def find_energy_peaks(energies: np.ndarray, threshold_ratio: float) -> List[int]:
    """Indices of chunks that are local maxima above ``threshold_ratio`` x mean.

    Both conditions are required: the energy exceeds the global threshold and
    is strictly greater than each neighbour that exists. The first and last
    chunk only have one neighbour to beat.

    Args:
        energies: Per-chunk energies.
        threshold_ratio: Multiple of the mean energy a peak must exceed.

    Returns:
        Ascending list of peak indices.
    """
    if len(energies) == 0:
        return []

    threshold = float(np.mean(energies)) * threshold_ratio
    padded = np.concatenate(([-np.inf], energies, [-np.inf]))
    is_peak = (
        (energies > threshold)
        & (energies > padded[:-2])
        & (energies > padded[2:])
    )
    return [int(i) for i in np.flatnonzero(is_peak)]


class TempoEstimator:
    """Estimator for track tempo."""

    def __init__(self, config: Optional[Config] = None):
        """Initialize tempo estimator.

        Args:
            config: Configuration object.
        """
        self.config = config or Config()

        self.min_bpm = self.config.get("tempo.min_bpm", 60)
        self.max_bpm = self.config.get("tempo.max_bpm", 200)
        self.half_time_threshold = self.config.get("tempo.half_time_threshold", 70)
        self.chunk_size = self.config.get("tempo.chunk_size", 1024)
        self.peak_threshold = self.config.get("tempo.peak_threshold", 1.3)
        self.default_bpm = self.config.get("tempo.default_bpm", 120)
        self.engine_confidence = self.config.get("tempo.engine_confidence", 0.85)
        self.heuristic_confidence = self.config.get("tempo.heuristic_confidence", 0.5)
        self.default_confidence = self.config.get("tempo.default_confidence", 0.3)

    def clamp(self, bpm: int) -> int:
        return max(self.min_bpm, min(self.max_bpm, bpm))

    def estimate(self, buffer: SampleBuffer, engine: Optional[TempoEngine] = None) -> TempoEstimate:
        """Estimate tempo, falling back to the heuristic on engine failure.

        Args:
            buffer: Resampled mono buffer.
            engine: Primary tempo engine, if any.

        Returns:
            TempoEstimate. Never raises for engine errors.
        """
        if engine is not None:
            try:
                return self.estimate_with_engine(buffer, engine)
            except EngineUnavailableError:
                logger.debug("No tempo engine, using peak-interval heuristic")
            except Exception as e:
                logger.warning(f"Engine tempo estimation failed, using heuristic: {e}")

        return self.estimate_heuristic(buffer)

    def estimate_with_engine(self, buffer: SampleBuffer, engine: TempoEngine) -> TempoEstimate:
        """Estimate tempo with the primary engine.

        Values below the half-time threshold after clamping are doubled.
        """
        raw = float(engine.estimate_bpm(buffer.samples, buffer.sample_rate))
        if not math.isfinite(raw):
            raise ValueError(f"Engine returned non-finite tempo: {raw}")

        bpm = self.clamp(round_half_up(raw))
        if bpm < self.half_time_threshold:
            bpm = bpm * 2

        logger.debug(f"Engine tempo: raw={raw:.2f}, bpm={bpm}")

        return TempoEstimate(
            bpm=int(bpm),
            confidence=self.engine_confidence,
            strategy=EstimationStrategy.ENGINE,
        )

    def estimate_heuristic(self, buffer: SampleBuffer) -> TempoEstimate:
        """Estimate tempo from the spacing of chunk-energy peaks."""
        energies = chunk_energies(buffer.samples, self.chunk_size)
        peaks = find_energy_peaks(energies, self.peak_threshold)

        if len(peaks) < 2:
            logger.debug(f"Only {len(peaks)} energy peak(s), using default tempo")
            return TempoEstimate(
                bpm=self.default_bpm,
                confidence=self.default_confidence,
                strategy=EstimationStrategy.HEURISTIC,
            )

        avg_interval = float(np.mean(np.diff(peaks)))
        seconds_per_beat = (avg_interval * self.chunk_size) / buffer.sample_rate
        bpm = self.clamp(round_half_up(60.0 / seconds_per_beat))

        logger.debug(f"Heuristic tempo: {len(peaks)} peaks, interval={avg_interval:.2f}, bpm={bpm}")

        return TempoEstimate(
            bpm=bpm,
            confidence=self.heuristic_confidence,
            strategy=EstimationStrategy.HEURISTIC,
        )
