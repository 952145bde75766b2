"""Tunables for the extraction pipeline and reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_float

MANUAL_REVIEW_THRESHOLD: Final[float] = 0.5
DEFAULT_CONFIDENCE: Final[float] = 0.7
LOW_CONFIDENCE_THRESHOLD: Final[float] = 0.7
RECOGNITION_TIMEOUT_SECONDS: Final[float] = 60.0
MIN_TRANSCRIPT_LENGTH: Final[int] = 10


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    manual_review_threshold: float = MANUAL_REVIEW_THRESHOLD
    default_confidence: float = DEFAULT_CONFIDENCE
    low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD
    recognition_timeout_seconds: float = RECOGNITION_TIMEOUT_SECONDS
    min_transcript_length: int = MIN_TRANSCRIPT_LENGTH


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        recognition_timeout_seconds=env_float(
            "INTAKESYNC_RECOGNITION_TIMEOUT", RECOGNITION_TIMEOUT_SECONDS
        ),
    )
