"""
Analysis orchestrator: the public entry point of the package.

Decoding, resampling and the three estimators are CPU-bound, so each runs in
a worker thread via ``asyncio.to_thread``. Energy, tempo and key are computed
concurrently over the same immutable buffer.
"""

import asyncio
import logging
from typing import Optional

from track_analyzer.config import Config, get_config
from track_analyzer.decoder import SampleBuffer, SampleDecoder
from track_analyzer.energy import calculate_energy
from track_analyzer.engine import EngineHandle, EngineState, get_engine_loader
from track_analyzer.key import KeyEstimator
from track_analyzer.models import AnalysisResult, Confidence
from track_analyzer.resampler import resample
from track_analyzer.sources import decode_data_url, resolve_reference
from track_analyzer.tempo import TempoEstimator


logger = logging.getLogger(__name__)


class AudioAnalyzer:
    """Derives tempo, key and energy from raw audio bytes."""

    def __init__(
        self,
        config: Optional[Config] = None,
        engine_handle: Optional[EngineHandle] = None,
    ):
        """Initialize analyzer.

        Args:
            config: Configuration object.
            engine_handle: Primary engine handle. Built from the
                ``engine.backend`` setting when omitted.
        """
        self.config = config or Config()

        self.target_sample_rate = self.config.target_sample_rate
        self.reference_rms = self.config.get("energy.reference_rms", 0.3)
        self.fetch_timeout = self.config.get("sources.fetch_timeout", 30.0)

        self.decoder = SampleDecoder()
        self.tempo_estimator = TempoEstimator(self.config)
        self.key_estimator = KeyEstimator(self.config)

        if engine_handle is None:
            engine_handle = EngineHandle(get_engine_loader(self.config.engine_backend))
        self.engine_handle = engine_handle

    @property
    def engine_ready(self) -> bool:
        """Whether the primary engine is initialized and usable."""
        return self.engine_handle.is_ready

    @property
    def engine_state(self) -> EngineState:
        return self.engine_handle.state

    async def preload(self, retry: bool = False) -> bool:
        """Initialize the primary engine ahead of the first analysis.

        Args:
            retry: Re-attempt initialization if an earlier attempt failed.

        Returns:
            True if the engine is ready.
        """
        if retry and self.engine_handle.reset():
            logger.info("Retrying primary engine initialization")
        await self.engine_handle.ensure_initialized()
        return self.engine_ready

    def prepare(self, data: bytes) -> SampleBuffer:
        """Decode ``data`` and resample it to the target rate.

        Raises:
            DecodeError: If the bytes are not decodable audio.
        """
        buffer = self.decoder.decode(data)
        return resample(buffer, self.target_sample_rate)

    async def analyze(self, data: bytes) -> AnalysisResult:
        """Analyze raw audio bytes.

        Args:
            data: Bytes of any supported audio container.

        Returns:
            Complete AnalysisResult.

        Raises:
            DecodeError: If the bytes are not decodable audio.
        """
        engine = await self.engine_handle.ensure_initialized()

        buffer = await asyncio.to_thread(self.prepare, data)
        logger.debug(f"Analyzing {buffer.duration:.2f}s of audio with engine '{engine.name}'")

        energy, tempo, key = await asyncio.gather(
            asyncio.to_thread(calculate_energy, buffer, self.reference_rms),
            asyncio.to_thread(self.tempo_estimator.estimate, buffer, engine),
            asyncio.to_thread(self.key_estimator.estimate, buffer, engine),
        )

        logger.info(
            f"Analysis complete: {tempo.bpm} BPM ({tempo.strategy.value}), "
            f"{key.key} ({key.strategy.value}), energy {energy}"
        )

        return AnalysisResult(
            bpm=tempo.bpm,
            musical_key=key.key,
            energy=energy,
            confidence=Confidence(bpm=tempo.confidence, key=key.confidence),
        )

    async def analyze_data_url(self, data_url: str) -> AnalysisResult:
        """Analyze audio embedded in a ``data:`` URL."""
        return await self.analyze(decode_data_url(data_url))

    async def analyze_reference(self, reference: str, allow_local: bool = True) -> AnalysisResult:
        """Analyze audio from a data URL, http(s)/file URL or local path.

        With ``allow_local`` False, file URLs and paths raise AudioSourceError.
        """
        data = await resolve_reference(
            reference, timeout=self.fetch_timeout, allow_local=allow_local
        )
        return await self.analyze(data)

    def analyze_sync(self, data: bytes) -> AnalysisResult:
        """Blocking variant of ``analyze`` for callers without an event loop."""
        return asyncio.run(self.analyze(data))


# Global analyzer instance
_analyzer_instance: Optional[AudioAnalyzer] = None


def get_analyzer() -> AudioAnalyzer:
    """Get the process-wide analyzer, creating it on first use."""
    global _analyzer_instance
    if _analyzer_instance is None:
        _analyzer_instance = AudioAnalyzer(get_config())
    return _analyzer_instance


def set_analyzer(analyzer: Optional[AudioAnalyzer]) -> None:
    """Replace the process-wide analyzer (None to recreate lazily)."""
    global _analyzer_instance
    _analyzer_instance = analyzer


async def analyze_audio(data: bytes) -> AnalysisResult:
    """Analyze raw audio bytes with the process-wide analyzer."""
    return await get_analyzer().analyze(data)


async def analyze_audio_from_data_url(data_url: str) -> AnalysisResult:
    """Analyze a base64 data URL with the process-wide analyzer."""
    return await get_analyzer().analyze_data_url(data_url)


async def analyze_audio_from_reference(reference: str) -> AnalysisResult:
    """Analyze a fetchable reference with the process-wide analyzer."""
    return await get_analyzer().analyze_reference(reference)


async def preload_engine(retry: bool = False) -> bool:
    """Pre-initialize the process-wide primary engine."""
    return await get_analyzer().preload(retry=retry)


def is_engine_ready() -> bool:
    """Whether the process-wide primary engine is ready."""
    return get_analyzer().engine_ready
