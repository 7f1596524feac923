"""
Energy level calculation.
"""

import numpy as np

from track_analyzer.decoder import SampleBuffer


# RMS of empirically "loud" music
REFERENCE_RMS = 0.3


def calculate_energy(buffer: SampleBuffer, reference_rms: float = REFERENCE_RMS) -> float:
    """Compute a normalized energy level in [0, 1].

    Args:
        buffer: Mono sample buffer.
        reference_rms: RMS value that maps to full energy.

    Returns:
        ``min(1, rms / reference_rms)`` rounded to two decimals.
    """
    if len(buffer) == 0:
        return 0.0

    samples = buffer.samples.astype(np.float64)
    rms = float(np.sqrt(np.mean(samples * samples)))
    normalized = min(1.0, rms / reference_rms)

    return round(normalized, 2)
