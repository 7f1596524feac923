"""
Linear-interpolation resampler.

Not band-limited: the estimators downstream only look at coarse temporal
and spectral structure.
"""

import logging

import numpy as np

from track_analyzer.decoder import SampleBuffer


logger = logging.getLogger(__name__)


def resample(buffer: SampleBuffer, target_rate: int) -> SampleBuffer:
    """Resample a buffer to ``target_rate`` by linear interpolation.

    Output sample ``i`` reads source position ``i * (rate / target_rate)`` and
    blends the floor and ceil neighbours by the fractional part. The ceil index
    is clamped to the last input sample.

    Args:
        buffer: Input buffer.
        target_rate: Output sample rate in Hz.

    Returns:
        Buffer at ``target_rate`` (the input itself if rates already match).
    """
    if target_rate <= 0:
        raise ValueError(f"Invalid target sample rate: {target_rate}")

    if buffer.sample_rate == target_rate:
        return buffer

    source = buffer.samples.astype(np.float64)
    n_in = len(source)
    ratio = buffer.sample_rate / target_rate
    n_out = int(np.floor(n_in / ratio + 0.5))

    logger.debug(f"Resampling {n_in} samples {buffer.sample_rate} Hz -> {target_rate} Hz")

    if n_in == 0 or n_out == 0:
        return SampleBuffer(samples=np.zeros(0, dtype=np.float32), sample_rate=target_rate)

    positions = np.arange(n_out, dtype=np.float64) * ratio
    lower = np.minimum(np.floor(positions).astype(np.int64), n_in - 1)
    upper = np.minimum(lower + 1, n_in - 1)
    frac = positions - lower

    output = source[lower] * (1.0 - frac) + source[upper] * frac

    return SampleBuffer(samples=output.astype(np.float32), sample_rate=target_rate)
