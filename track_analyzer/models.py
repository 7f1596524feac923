"""
Pydantic models for analysis results.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from track_analyzer.key import PITCH_CLASSES


class Confidence(BaseModel):
    """Confidence of the tempo and key estimates."""

    model_config = ConfigDict(frozen=True)

    bpm: float = Field(..., ge=0, le=1, description="Confidence in the BPM estimate")
    key: float = Field(..., ge=0, le=1, description="Confidence in the key estimate")


class AnalysisResult(BaseModel):
    """Tempo, key and energy of one track."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bpm: int = Field(..., ge=60, le=200, description="Tempo in beats per minute")
    musical_key: str = Field(
        ...,
        alias="musicalKey",
        description="Pitch class and mode, e.g. 'A Minor'",
    )
    energy: float = Field(..., ge=0, le=1, description="Normalized energy level")
    confidence: Confidence

    @field_validator("musical_key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        parts = value.split(" ")
        if len(parts) != 2 or parts[0] not in PITCH_CLASSES or parts[1] not in ("Major", "Minor"):
            raise ValueError(f"Invalid musical key: {value!r}")
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase field names used by track records."""
        return self.model_dump(by_alias=True)
