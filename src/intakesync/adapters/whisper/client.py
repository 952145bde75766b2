"""Transcriber backed by the OpenAI audio transcription endpoint."""

from __future__ import annotations

import asyncio
import mimetypes
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import ValidationError

from intakesync.adapters.http_resilience import ResilientClient
from intakesync.config import TranscriptionConfig, get_transcription_config
from intakesync.domain.errors import InputRejectedError, UpstreamRecognitionError

from .schema import ErrorResponse, TranscriptionResponse

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from intakesync.config import ResilienceConfig
    from intakesync.domain.ports.conversion import Transcriber

log = getLogger(__name__)

TRANSCRIPTIONS_PATH: Final[str] = "/v1/audio/transcriptions"
SERVICE_NAME: Final[str] = "whisper"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class WhisperTranscriber:
    config: TranscriptionConfig = field(default_factory=get_transcription_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def transcribe(self, path: Path, *, mime_type: str | None = None) -> str:
        try:
            audio = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise InputRejectedError(f"Cannot read audio file {path.name}: {exc}") from exc
        if not audio:
            raise InputRejectedError(f"Audio file {path.name} is empty")

        content_type = mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        resilience = self.config.resolved_resilience()
        try:
            async with self.client_factory(resilience) as client:
                response = await client.post(
                    TRANSCRIPTIONS_PATH,
                    data={"model": self.config.model, "language": self.config.language},
                    files={"file": (path.name, audio, content_type)},
                )
        except httpx.HTTPError as exc:
            log.error("Transcription request failed: %s", exc)
            raise UpstreamRecognitionError(
                f"Transcription request failed: {exc}", service=SERVICE_NAME
            ) from exc

        if response.is_error:
            raise UpstreamRecognitionError(_error_message(response), service=SERVICE_NAME)
        try:
            transcript = TranscriptionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamRecognitionError(
                f"Unexpected transcription response: {exc}", service=SERVICE_NAME
            ) from exc

        log.info("Transcribed %s: %d characters", path.name, len(transcript.text))
        return transcript.text


def _error_message(response: httpx.Response) -> str:
    try:
        error = ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return f"Transcription service returned HTTP {response.status_code}"
    log.error("Transcription API error %s: %s", response.status_code, error.error.message)
    return f"Transcription service returned HTTP {response.status_code}: {error.error.message}"


if TYPE_CHECKING:
    _transcriber_check: Transcriber = WhisperTranscriber()
