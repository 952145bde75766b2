"""Public interface for the speech-to-text adapter."""

from __future__ import annotations

from .client import WhisperTranscriber
from .schema import TranscriptionResponse

__all__ = ["TranscriptionResponse", "WhisperTranscriber"]
