"""
Tests for key estimation.
"""

import numpy as np
import pytest

from track_analyzer.config import Config
from track_analyzer.decoder import SampleBuffer
from track_analyzer.engine import ABSENT_ENGINE, EstimationStrategy
from track_analyzer.key import (
    KeyEstimator,
    PITCH_CLASSES,
    compute_chroma,
    match_key_profile,
    normalize_key_name,
    pitch_class_frequency,
)

from conftest import FailingEngine, FakeEngine


class TestChroma:
    """Tests for the correlation chroma vector."""

    def test_pitch_class_frequency(self):
        """Test pitch class frequencies relative to A440."""
        assert pitch_class_frequency(9) == 440.0
        assert pitch_class_frequency(0) == pytest.approx(261.626, abs=1e-3)
        assert pitch_class_frequency(11) == pytest.approx(493.883, abs=1e-3)

    def test_silence_is_all_zero(self):
        """Test silence produces an all-zero chroma."""
        chroma = compute_chroma(np.zeros(44100), 44100)

        assert chroma.shape == (12,)
        assert np.all(chroma == 0)

    def test_short_input_is_all_zero(self):
        """Test input shorter than one window produces an all-zero chroma."""
        chroma = compute_chroma(np.ones(4095), 44100)

        assert np.all(chroma == 0)

    def test_a440_window_favours_a(self):
        """Test a phase-aligned 440 Hz window peaks at pitch class A."""
        i = np.arange(4096)
        samples = np.sin(2 * np.pi * 440 * i / 44100)

        chroma = compute_chroma(samples, 44100)

        assert int(np.argmax(chroma)) == PITCH_CLASSES.index('A')
        assert chroma.max() == 1.0
        assert np.all((chroma >= 0) & (chroma <= 1))


class TestProfileMatching:
    """Tests for Krumhansl-Kessler profile matching."""

    def test_zero_chroma_is_c_major(self):
        """Test ties keep the first candidate, C Major."""
        pitch, mode, score = match_key_profile(np.zeros(12))

        assert (pitch, mode) == ('C', 'Major')
        assert score == 0.0

    def test_single_pitch_class_is_major_tonic(self):
        """Test a lone G is read as G Major."""
        chroma = np.zeros(12)
        chroma[7] = 1.0

        pitch, mode, _ = match_key_profile(chroma)

        assert (pitch, mode) == ('G', 'Major')

    def test_minor_triad(self):
        """Test an A-C-E triad is read as A Minor."""
        chroma = np.zeros(12)
        chroma[[9, 0, 4]] = 1.0

        pitch, mode, _ = match_key_profile(chroma)

        assert (pitch, mode) == ('A', 'Minor')


class TestKeyNames:
    """Tests for normalizing engine key names."""

    @pytest.mark.parametrize("key,scale,expected", [
        ("A", "minor", "A Minor"),
        ("C#", "major", "C# Major"),
        ("Eb", "minor", "D# Minor"),
        ("Bb", "Major", "A# Major"),
    ])
    def test_normalize(self, key, scale, expected):
        """Test sharps are kept and flats mapped to sharps."""
        assert normalize_key_name(key, scale) == expected

    @pytest.mark.parametrize("key,scale", [("H", "major"), ("C", "dorian")])
    def test_unknown_names_raise(self, key, scale):
        """Test unrecognised pitch or scale raises ValueError."""
        with pytest.raises(ValueError):
            normalize_key_name(key, scale)


class TestKeyEstimator:
    """Tests for the key estimator."""

    @pytest.fixture
    def estimator(self):
        """Create key estimator."""
        return KeyEstimator(Config())

    @pytest.fixture
    def silence(self):
        """Two seconds of silence."""
        return SampleBuffer(np.zeros(88200), 44100)

    def test_silence_heuristic(self, estimator, silence):
        """Test silence yields C Major with 0.5 confidence."""
        result = estimator.estimate(silence)

        assert result.key == "C Major"
        assert result.confidence == 0.5
        assert result.strategy is EstimationStrategy.HEURISTIC

    def test_engine_strength_is_confidence(self, estimator, silence):
        """Test the engine's strength is reported as confidence."""
        result = estimator.estimate(silence, FakeEngine(key="A", scale="minor", strength=0.9))

        assert result.key == "A Minor"
        assert result.confidence == 0.9
        assert result.strategy is EstimationStrategy.ENGINE

    def test_missing_strength_defaults(self, estimator, silence):
        """Test missing strength falls back to 0.8."""
        result = estimator.estimate(silence, FakeEngine(key="F", scale="major", strength=None))

        assert result.key == "F Major"
        assert result.confidence == 0.8

    def test_zero_strength_defaults(self, estimator, silence):
        """Test a zero strength is treated as missing."""
        result = estimator.estimate(silence, FakeEngine(strength=0.0))

        assert result.key == "A Minor"
        assert result.confidence == 0.8

    def test_strength_is_clamped(self, estimator, silence):
        """Test out-of-range strength is clamped to [0, 1]."""
        result = estimator.estimate(silence, FakeEngine(strength=1.7))

        assert result.confidence == 1.0

    def test_engine_failure_falls_back(self, estimator, silence):
        """Test an engine exception routes to the heuristic."""
        result = estimator.estimate(silence, FailingEngine())

        assert result.key == "C Major"
        assert result.strategy is EstimationStrategy.HEURISTIC

    def test_unrecognised_engine_key_falls_back(self, estimator, silence):
        """Test a key the engine names oddly routes to the heuristic."""
        result = estimator.estimate(silence, FakeEngine(key="H", scale="major"))

        assert result.strategy is EstimationStrategy.HEURISTIC

    def test_absent_engine_uses_heuristic(self, estimator, silence):
        """Test the absent engine stand-in routes to the heuristic."""
        result = estimator.estimate(silence, ABSENT_ENGINE)

        assert result.strategy is EstimationStrategy.HEURISTIC
        assert result.confidence == 0.5
