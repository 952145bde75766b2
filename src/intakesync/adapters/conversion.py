"""Load raw job input from disk and turn it into recognizer input."""

from __future__ import annotations

import asyncio
import base64
import mimetypes
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from intakesync.domain.errors import InputRejectedError
from intakesync.domain.model import InputKind
from intakesync.domain.ports.recognition import PreparedInput

if TYPE_CHECKING:
    from intakesync.domain.model import InputReference
    from intakesync.domain.ports.conversion import InputConverter, Transcriber

log = getLogger(__name__)

MIN_TRANSCRIPT_LENGTH: Final[int] = 10

IMAGE_TYPES: Final[frozenset[str]] = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/webp"}
)
AUDIO_TYPES: Final[frozenset[str]] = frozenset(
    {
        "audio/mpeg",
        "audio/mp3",
        "audio/wav",
        "audio/x-wav",
        "audio/wave",
        "audio/x-m4a",
        "audio/m4a",
        "audio/mp4",
        "audio/webm",
        "audio/ogg",
    }
)


def _media_type(reference: InputReference, path: Path) -> str | None:
    if reference.mime_type:
        return reference.mime_type.lower()
    guessed, _ = mimetypes.guess_type(reference.filename or path.name)
    return guessed


def _require_path(reference: InputReference) -> Path:
    if not reference.path:
        raise InputRejectedError(f"{reference.kind} input has no file")
    path = Path(reference.path)
    if not path.is_file():
        raise InputRejectedError(f"Input file not found: {path.name}")
    return path


@dataclass(slots=True)
class FileInputConverter:
    """Prepares transcripts, ID images and call recordings.

    Audio needs a ``transcriber``; without one, audio input is rejected.
    """

    transcriber: Transcriber | None = None
    min_transcript_length: int = MIN_TRANSCRIPT_LENGTH

    async def prepare(self, reference: InputReference) -> PreparedInput:
        match reference.kind:
            case InputKind.TRANSCRIPT:
                return await self._prepare_transcript(reference)
            case InputKind.ID_IMAGE:
                return await self._prepare_image(reference)
            case InputKind.AUDIO:
                return await self._prepare_audio(reference)
            case _:
                raise InputRejectedError(f"{reference.kind} input cannot be extracted")

    def _checked_transcript(self, text: str | None) -> str:
        cleaned = (text or "").strip()
        if len(cleaned) < self.min_transcript_length:
            raise InputRejectedError(
                f"Transcript is too short (minimum {self.min_transcript_length} characters)"
            )
        return cleaned

    async def _prepare_transcript(self, reference: InputReference) -> PreparedInput:
        text = reference.text
        if text is None and reference.path:
            path = _require_path(reference)
            try:
                text = await asyncio.to_thread(path.read_text, encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise InputRejectedError(f"Cannot read transcript {path.name}: {exc}") from exc
        return PreparedInput(
            kind=InputKind.TRANSCRIPT,
            text=self._checked_transcript(text),
            filename=reference.filename,
        )

    async def _prepare_image(self, reference: InputReference) -> PreparedInput:
        path = _require_path(reference)
        media_type = _media_type(reference, path)
        if media_type not in IMAGE_TYPES:
            raise InputRejectedError(
                f"Unsupported image type {media_type or 'unknown'} for {path.name}"
            )
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise InputRejectedError(f"Cannot read image {path.name}: {exc}") from exc
        if not data:
            raise InputRejectedError(f"Image {path.name} is empty")
        log.debug("Encoded %s (%d bytes, %s)", path.name, len(data), media_type)
        return PreparedInput(
            kind=InputKind.ID_IMAGE,
            image_base64=base64.b64encode(data).decode("ascii"),
            media_type=media_type,
            filename=reference.filename or path.name,
        )

    async def _prepare_audio(self, reference: InputReference) -> PreparedInput:
        path = _require_path(reference)
        media_type = _media_type(reference, path)
        if media_type not in AUDIO_TYPES:
            raise InputRejectedError(
                f"Unsupported audio type {media_type or 'unknown'} for {path.name}"
            )
        if self.transcriber is None:
            raise InputRejectedError("Audio input needs a transcription service")
        text = await self.transcriber.transcribe(path, mime_type=media_type)
        return PreparedInput(
            kind=InputKind.AUDIO,
            text=self._checked_transcript(text),
            filename=reference.filename or path.name,
        )


if TYPE_CHECKING:
    _converter_check: InputConverter = FileInputConverter()
