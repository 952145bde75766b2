from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest

from intakesync.adapters.whisper import WhisperTranscriber
from intakesync.config import TranscriptionConfig
from intakesync.domain.errors import InputRejectedError, UpstreamRecognitionError
from tests.helpers.http import make_client_factory

if TYPE_CHECKING:
    from pathlib import Path

CONFIG = TranscriptionConfig(api_key="sk-test")


@pytest.fixture
def recording(tmp_path: Path) -> Path:
    path = tmp_path / "call.mp3"
    path.write_bytes(b"ID3 fake audio frames")
    return path


def test_transcribe_uploads_file(recording: Path) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"text": "My name is Jane Doe.", "language": "en"})

    transcriber = WhisperTranscriber(config=CONFIG, client_factory=make_client_factory(handler))

    text = asyncio.run(transcriber.transcribe(recording, mime_type="audio/mpeg"))

    assert text == "My name is Jane Doe."
    (request,) = captured
    assert request.url.path == "/v1/audio/transcriptions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    body = request.content
    assert b'name="model"' in body
    assert b"whisper-1" in body
    assert b'filename="call.mp3"' in body
    assert b"ID3 fake audio frames" in body


def test_service_error_becomes_upstream_failure(recording: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(
            401,
            json={"error": {"message": "Incorrect API key provided", "type": "invalid_request"}},
        )

    transcriber = WhisperTranscriber(config=CONFIG, client_factory=make_client_factory(handler))

    with pytest.raises(UpstreamRecognitionError, match="HTTP 401: Incorrect API key") as excinfo:
        asyncio.run(transcriber.transcribe(recording))

    assert excinfo.value.service == "whisper"


def test_unexpected_payload_becomes_upstream_failure(recording: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(200, json={"segments": []})

    transcriber = WhisperTranscriber(config=CONFIG, client_factory=make_client_factory(handler))

    with pytest.raises(UpstreamRecognitionError, match="Unexpected transcription response"):
        asyncio.run(transcriber.transcribe(recording))


def test_empty_or_missing_audio_is_rejected(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    transcriber = WhisperTranscriber(config=CONFIG, client_factory=make_client_factory(handler))
    empty = tmp_path / "empty.wav"
    empty.write_bytes(b"")

    with pytest.raises(InputRejectedError, match="empty"):
        asyncio.run(transcriber.transcribe(empty))
    with pytest.raises(InputRejectedError, match="Cannot read"):
        asyncio.run(transcriber.transcribe(tmp_path / "missing.wav"))
