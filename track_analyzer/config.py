"""
Configuration module for Track Analyzer.
"""

import copy
import os
from typing import Any, Dict, Optional

import yaml


class Config:
    """Configuration manager for the track analyzer."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration.

        Args:
            config_path: Path to YAML configuration file. If None, uses default.
        """
        self._config: Dict[str, Any] = self._get_builtin_defaults()
        self._config_path = config_path

        if config_path and os.path.exists(config_path):
            self.load_from_file(config_path)
        else:
            self._load_defaults()

    def _load_defaults(self) -> None:
        """Overlay the checkout's default configuration file, if present."""
        default_config = os.path.join(
            os.path.dirname(__file__), "..", "config", "config.yaml"
        )
        if os.path.exists(default_config):
            self.load_from_file(default_config)

    def _get_builtin_defaults(self) -> Dict[str, Any]:
        """Return built-in default configuration."""
        return {
            "audio": {
                "target_sample_rate": 44100,
            },
            "energy": {
                "reference_rms": 0.3,
            },
            "tempo": {
                "min_bpm": 60,
                "max_bpm": 200,
                "half_time_threshold": 70,
                "chunk_size": 1024,
                "peak_threshold": 1.3,
                "default_bpm": 120,
                "engine_confidence": 0.85,
                "heuristic_confidence": 0.5,
                "default_confidence": 0.3,
            },
            "key": {
                "window_size": 4096,
                "reference_frequency": 440.0,
                "default_engine_confidence": 0.8,
                "heuristic_confidence": 0.5,
            },
            "engine": {
                "backend": "essentia",
            },
            "sources": {
                "fetch_timeout": 30.0,
            },
            "api": {
                "host": "0.0.0.0",
                "port": 8000,
                "reload": False,
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        }

    def load_from_file(self, config_path: str) -> None:
        """Load configuration from YAML file.

        Values in the file override the built-in defaults section by section.

        Args:
            config_path: Path to YAML configuration file.
        """
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}

        self._config = _merge(self._config, loaded)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-separated key.

        Args:
            key: Dot-separated configuration key (e.g., "tempo.chunk_size")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-separated key.

        Args:
            key: Dot-separated configuration key
            value: Value to set
        """
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    @property
    def audio(self) -> Dict[str, Any]:
        """Get audio decoding configuration."""
        return self._config.get("audio", {})

    @property
    def tempo(self) -> Dict[str, Any]:
        """Get tempo estimation configuration."""
        return self._config.get("tempo", {})

    @property
    def key(self) -> Dict[str, Any]:
        """Get key estimation configuration."""
        return self._config.get("key", {})

    @property
    def engine(self) -> Dict[str, Any]:
        """Get primary engine configuration."""
        return self._config.get("engine", {})

    @property
    def api(self) -> Dict[str, Any]:
        """Get API configuration."""
        return self._config.get("api", {})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self._config.get("logging", {})

    @property
    def target_sample_rate(self) -> int:
        """Get the sample rate every buffer is resampled to."""
        return self.get("audio.target_sample_rate", 44100)

    @property
    def engine_backend(self) -> str:
        """Get the primary engine backend name."""
        return self.get("engine.backend", "essentia")

    def save(self, path: str) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path to save configuration.
        """
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self._config, f, default_flow_style=False)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# Global config instance
_config_instance: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """Get global configuration instance.

    Args:
        config_path: Optional path to configuration file.

    Returns:
        Configuration instance.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_path)
    return _config_instance


def set_config(config: Config) -> None:
    """Set global configuration instance.

    Args:
        config: Configuration instance.
    """
    global _config_instance
    _config_instance = config
