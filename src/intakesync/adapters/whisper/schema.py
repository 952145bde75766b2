"""Pydantic models describing the transcription API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class WhisperBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TranscriptionResponse(WhisperBaseModel):
    text: str
    language: str | None = None
    duration: float | None = None


class ErrorDetail(WhisperBaseModel):
    message: str
    type: str | None = None
    code: str | None = None


class ErrorResponse(WhisperBaseModel):
    error: ErrorDetail
