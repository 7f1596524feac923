"""
Track Analyzer - tempo, key and energy extraction for audio tracks.

This package provides tools for:
- Decoding audio containers to mono sample buffers
- Estimating tempo (BPM) and musical key, with fallback heuristics
  when the primary extraction engine is unavailable
- Computing a normalized energy level
"""

__version__ = "0.1.0"
__author__ = "Track Analyzer Team"
__license__ = "MIT"

from track_analyzer.config import Config
from track_analyzer.decoder import DecodeError, SampleBuffer, SampleDecoder
from track_analyzer.engine import EngineHandle, EngineState
from track_analyzer.models import AnalysisResult, Confidence
from track_analyzer.sources import AudioSourceError
from track_analyzer.analyzer import (
    AudioAnalyzer,
    analyze_audio,
    analyze_audio_from_data_url,
    analyze_audio_from_reference,
    get_analyzer,
    is_engine_ready,
    preload_engine,
)

__all__ = [
    "Config",
    "DecodeError",
    "SampleBuffer",
    "SampleDecoder",
    "EngineHandle",
    "EngineState",
    "AnalysisResult",
    "Confidence",
    "AudioSourceError",
    "AudioAnalyzer",
    "analyze_audio",
    "analyze_audio_from_data_url",
    "analyze_audio_from_reference",
    "get_analyzer",
    "is_engine_ready",
    "preload_engine",
]
