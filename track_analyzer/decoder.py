"""
Audio decoding module.

Turns an opaque audio byte buffer into a mono float32 SampleBuffer at the
file's native sample rate. soundfile handles WAV/FLAC/OGG/AIFF directly from
memory; anything it cannot parse (MP3, M4A, ...) goes through librosa's
audioread backend via a temporary file.
"""

import io
import logging
import os
import tempfile
import warnings
from dataclasses import dataclass
from typing import Tuple

import librosa
import numpy as np
import soundfile as sf


logger = logging.getLogger(__name__)


class DecodeError(Exception):
    """Raised when a byte buffer cannot be decoded as audio."""


@dataclass(frozen=True)
class SampleBuffer:
    """Immutable single-channel float32 samples tagged with their rate."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        samples = np.ascontiguousarray(self.samples, dtype=np.float32)
        if samples.ndim != 1:
            raise ValueError(f"SampleBuffer must be mono, got shape {samples.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        """Logical duration in seconds."""
        return len(self.samples) / self.sample_rate


def downmix_to_mono(samples: np.ndarray) -> np.ndarray:
    """Reduce a (frames, channels) array to mono.

    A stereo frame becomes the arithmetic mean of its left and right samples.
    Channels beyond the first two are ignored.

    Args:
        samples: Array of shape (frames,) or (frames, channels).

    Returns:
        1-D float32 array.
    """
    if samples.ndim == 1:
        return samples.astype(np.float32, copy=False)
    if samples.shape[1] == 1:
        return samples[:, 0].astype(np.float32, copy=False)

    left = samples[:, 0].astype(np.float32)
    right = samples[:, 1].astype(np.float32)
    return (left + right) / np.float32(2.0)


class SampleDecoder:
    """Decoder for in-memory audio containers."""

    def decode(self, data: bytes) -> SampleBuffer:
        """Decode audio bytes into a mono buffer.

        Args:
            data: Raw bytes of an audio container.

        Returns:
            Mono SampleBuffer at the native sample rate.

        Raises:
            DecodeError: If the bytes are empty, unparseable or hold no frames.
        """
        if not data:
            raise DecodeError("Audio buffer is empty")

        try:
            samples, sample_rate = self._decode_soundfile(data)
            logger.debug(f"Decoded {len(data)} bytes with soundfile")
        except Exception as sf_error:
            logger.debug(f"soundfile could not decode buffer ({sf_error}), trying librosa")
            try:
                samples, sample_rate = self._decode_librosa(data)
            except Exception as e:
                raise DecodeError(f"Unsupported or corrupt audio data: {e}") from e

        if samples.shape[0] == 0:
            raise DecodeError("Audio data contains no frames")

        return SampleBuffer(samples=downmix_to_mono(samples), sample_rate=int(sample_rate))

    def _decode_soundfile(self, data: bytes) -> Tuple[np.ndarray, int]:
        """Decode with soundfile; returns (frames, channels) samples."""
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        return samples, sample_rate

    def _decode_librosa(self, data: bytes) -> Tuple[np.ndarray, int]:
        """Decode with librosa/audioread; returns (frames, channels) samples."""
        fd, path = tempfile.mkstemp(prefix="track-analyzer-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)

            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                samples, sample_rate = librosa.load(path, sr=None, mono=False)
        finally:
            os.unlink(path)

        # librosa returns (channels, frames) for multi-channel audio
        if samples.ndim == 1:
            samples = samples.reshape(-1, 1)
        else:
            samples = samples.T

        return samples.astype(np.float32, copy=False), sample_rate
