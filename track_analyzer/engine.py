"""
Primary extraction engine: interfaces, the essentia backend and the
process-wide, initialize-once handle.

The estimators only see the ``TempoEngine`` / ``KeyEngine`` interfaces. The
concrete engine is produced by a loader callable so that the import of the
(optional, heavy) essentia package happens lazily and exactly once.
"""

import asyncio
import importlib
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Protocol

import numpy as np


logger = logging.getLogger(__name__)


class EngineUnavailableError(RuntimeError):
    """Raised when an estimation is requested from an absent engine."""


class EstimationStrategy(str, Enum):
    """Which path produced an estimate."""

    ENGINE = "engine"
    HEURISTIC = "heuristic"


@dataclass(frozen=True)
class EngineKey:
    """Raw key estimate as reported by an engine."""

    key: str
    scale: str
    strength: Optional[float] = None


class TempoEngine(Protocol):
    """Engine capable of estimating a tempo in BPM."""

    def estimate_bpm(self, samples: np.ndarray, sample_rate: int) -> float:
        ...


class KeyEngine(Protocol):
    """Engine capable of estimating a musical key."""

    def estimate_key(self, samples: np.ndarray, sample_rate: int) -> EngineKey:
        ...


class AnalysisEngine(TempoEngine, KeyEngine, Protocol):
    """Engine providing both tempo and key estimation."""

    name: str


class AbsentEngine:
    """Stand-in used when no primary engine could be loaded."""

    name = "absent"

    def estimate_bpm(self, samples: np.ndarray, sample_rate: int) -> float:
        raise EngineUnavailableError("No primary extraction engine loaded")

    def estimate_key(self, samples: np.ndarray, sample_rate: int) -> EngineKey:
        raise EngineUnavailableError("No primary extraction engine loaded")


ABSENT_ENGINE = AbsentEngine()


class EssentiaEngine:
    """Primary engine backed by ``essentia.standard``.

    Algorithm instances are created per call, so one engine can serve
    concurrent estimations from several threads.
    """

    name = "essentia"

    def __init__(self, standard_module):
        self._es = standard_module

    def estimate_bpm(self, samples: np.ndarray, sample_rate: int) -> float:
        estimator = self._es.PercivalBpmEstimator(sampleRate=int(sample_rate))
        return float(estimator(_as_vector(samples)))

    def estimate_key(self, samples: np.ndarray, sample_rate: int) -> EngineKey:
        extractor = self._es.KeyExtractor(sampleRate=float(sample_rate))
        key, scale, strength = extractor(_as_vector(samples))
        return EngineKey(key=str(key), scale=str(scale), strength=float(strength))


def _as_vector(samples: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(samples, dtype=np.float32)


def load_essentia_engine() -> EssentiaEngine:
    """Import essentia and build the engine.

    Raises:
        ImportError: If essentia is not installed.
    """
    module = importlib.import_module("essentia.standard")
    return EssentiaEngine(module)


ENGINE_LOADERS: Dict[str, Callable[[], AnalysisEngine]] = {
    "essentia": load_essentia_engine,
}


def get_engine_loader(backend: Optional[str]) -> Optional[Callable[[], AnalysisEngine]]:
    """Resolve a backend name to its loader.

    Args:
        backend: Backend name from configuration; ``"none"`` or None disables
            the primary engine.

    Returns:
        Loader callable, or None when the engine is disabled.
    """
    if backend is None or str(backend).lower() == "none":
        return None

    try:
        return ENGINE_LOADERS[str(backend).lower()]
    except KeyError:
        raise ValueError(
            f"Unknown engine backend: {backend}. "
            f"Available: {', '.join(sorted(ENGINE_LOADERS))}, none"
        )


class EngineState(str, Enum):
    """Lifecycle of the primary engine handle."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class EngineHandle:
    """Lazily-initialized handle to the primary engine.

    Exactly one initialization attempt is in flight at a time: the first
    caller submits it and every other caller waits on the same future. The
    outcome (``READY`` or ``UNAVAILABLE``) is kept until ``reset()``.
    """

    def __init__(self, loader: Optional[Callable[[], AnalysisEngine]] = None):
        """Initialize handle.

        Args:
            loader: Callable building the engine. None means no engine is
                configured and the handle becomes ``UNAVAILABLE`` on first use.
        """
        self._loader = loader
        self._lock = threading.Lock()
        self._state = EngineState.UNINITIALIZED
        self._engine: Optional[AnalysisEngine] = None
        self._error: Optional[BaseException] = None
        self._future: Optional[Future] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is EngineState.READY

    @property
    def engine(self) -> AnalysisEngine:
        """The loaded engine, or an AbsentEngine unless the handle is ready."""
        return self._engine if self._engine is not None else ABSENT_ENGINE

    @property
    def error(self) -> Optional[BaseException]:
        """Exception from the last failed initialization, if any."""
        return self._error

    def _begin(self) -> Optional[Future]:
        """Return the in-flight initialization, starting it if needed."""
        with self._lock:
            if self._state in (EngineState.READY, EngineState.UNAVAILABLE):
                return None

            if self._future is None:
                if self._executor is None:
                    self._executor = ThreadPoolExecutor(
                        max_workers=1, thread_name_prefix="engine-init"
                    )
                self._state = EngineState.INITIALIZING
                self._future = self._executor.submit(self._initialize)

            return self._future

    def _initialize(self) -> None:
        engine = None
        error = None

        if self._loader is None:
            logger.info("No primary engine configured, using fallback estimators")
        else:
            try:
                engine = self._loader()
                logger.info(f"Primary engine '{getattr(engine, 'name', engine)}' initialized")
            except Exception as e:
                error = e
                logger.warning(f"Primary engine unavailable, using fallback estimators: {e}")

        with self._lock:
            self._engine = engine
            self._error = error
            self._state = EngineState.READY if engine is not None else EngineState.UNAVAILABLE
            self._future = None

    async def ensure_initialized(self) -> AnalysisEngine:
        """Initialize once and return the engine (AbsentEngine when unavailable).

        Never raises for initialization failures.
        """
        future = self._begin()
        if future is not None:
            await asyncio.wrap_future(future)
        return self.engine

    def initialize(self) -> AnalysisEngine:
        """Blocking variant of ``ensure_initialized``."""
        future = self._begin()
        if future is not None:
            future.result()
        return self.engine

    def reset(self) -> bool:
        """Forget an ``UNAVAILABLE`` outcome so the next caller retries.

        Returns:
            True if the handle was reset.
        """
        with self._lock:
            if self._state is not EngineState.UNAVAILABLE:
                return False
            self._state = EngineState.UNINITIALIZED
            self._error = None
            return True
