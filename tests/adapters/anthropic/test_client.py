from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from intakesync.adapters.anthropic import AnthropicRecognizer, build_request, parse_extraction
from intakesync.config import RecognitionConfig
from intakesync.domain.errors import InputRejectedError, UpstreamRecognitionError
from intakesync.domain.model import InputKind
from intakesync.domain.ports.recognition import PreparedInput
from tests.helpers.http import make_client_factory
from tests.helpers.jobs import SAMPLE_TRANSCRIPT

CONFIG = RecognitionConfig(api_key="test-key", model="claude-test", max_tokens=512)

REPLY_TEXT = (
    "Here is what I found:\n```json\n"
    '{"firstName": "Jane", "lastName": "Doe", "dob": "1990-12-25", '
    '"confidence": {"firstName": 0.95, "lastName": 0.9, "dob": 0.8}}\n```'
)


def _messages_reply(text: str = REPLY_TEXT) -> dict[str, object]:
    return {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "model": "claude-test-20250101",
        "stop_reason": "end_turn",
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": 100, "output_tokens": 40},
    }


def _transcript() -> PreparedInput:
    return PreparedInput(kind=InputKind.TRANSCRIPT, text=SAMPLE_TRANSCRIPT)


def test_recognize_transcript_sends_messages_request() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=_messages_reply())

    recognizer = AnthropicRecognizer(config=CONFIG, client_factory=make_client_factory(handler))

    response = asyncio.run(recognizer.recognize(_transcript()))

    assert response.fields == {"firstName": "Jane", "lastName": "Doe", "dob": "1990-12-25"}
    assert response.confidence == {"firstName": 0.95, "lastName": 0.9, "dob": 0.8}
    assert response.engine == "claude-test-20250101"

    (request,) = captured
    assert request.method == "POST"
    assert request.url.path == "/v1/messages"
    assert request.headers["x-api-key"] == "test-key"
    assert request.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(request.content)
    assert body["model"] == "claude-test"
    assert body["max_tokens"] == 512
    (message,) = body["messages"]
    assert message["role"] == "user"
    assert message["content"][0]["type"] == "text"
    assert message["content"][0]["text"].endswith(SAMPLE_TRANSCRIPT)


def test_recognize_id_image_sends_image_block() -> None:
    captured: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(200, json=_messages_reply('{"idNumber": "D1234567"}'))

    recognizer = AnthropicRecognizer(config=CONFIG, client_factory=make_client_factory(handler))
    prepared = PreparedInput(
        kind=InputKind.ID_IMAGE,
        image_base64="aGVsbG8=",
        media_type="image/jpeg",
    )

    response = asyncio.run(recognizer.recognize(prepared))

    assert response.fields == {"idNumber": "D1234567"}
    assert response.confidence == {}
    content = captured[0]["messages"][0]["content"]  # type: ignore[index]
    assert content[1] == {
        "type": "image",
        "source": {"type": "base64", "media_type": "image/jpeg", "data": "aGVsbG8="},
    }


def test_api_error_becomes_upstream_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(
            400,
            json={
                "type": "error",
                "error": {"type": "invalid_request_error", "message": "image too large"},
            },
        )

    recognizer = AnthropicRecognizer(config=CONFIG, client_factory=make_client_factory(handler))

    with pytest.raises(UpstreamRecognitionError, match="HTTP 400: image too large") as excinfo:
        asyncio.run(recognizer.recognize(_transcript()))

    assert excinfo.value.service == "anthropic"


def test_non_json_error_body_is_reported_by_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(503, text="upstream unavailable")

    recognizer = AnthropicRecognizer(config=CONFIG, client_factory=make_client_factory(handler))

    with pytest.raises(UpstreamRecognitionError, match="returned HTTP 503$"):
        asyncio.run(recognizer.recognize(_transcript()))


def test_transport_error_becomes_upstream_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    recognizer = AnthropicRecognizer(config=CONFIG, client_factory=make_client_factory(handler))

    with pytest.raises(UpstreamRecognitionError, match="connection refused"):
        asyncio.run(recognizer.recognize(_transcript()))


def test_reply_without_text_block_is_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        del request
        reply = _messages_reply()
        reply["content"] = []
        return httpx.Response(200, json=reply)

    recognizer = AnthropicRecognizer(config=CONFIG, client_factory=make_client_factory(handler))

    with pytest.raises(UpstreamRecognitionError, match="no text block"):
        asyncio.run(recognizer.recognize(_transcript()))


def test_parse_extraction_handles_null_confidence() -> None:
    payload = parse_extraction('{"sex": "F", "confidence": null}')

    assert payload.field_values() == {"sex": "F"}
    assert payload.confidence == {}


@pytest.mark.parametrize(
    "text",
    ["I could not read the document.", '{"firstName": "Jane",}', '{"confidence": [1, 2]}'],
)
def test_parse_extraction_rejects_unusable_replies(text: str) -> None:
    with pytest.raises(UpstreamRecognitionError):
        parse_extraction(text)


def test_build_request_requires_input_payload() -> None:
    with pytest.raises(InputRejectedError):
        build_request(
            PreparedInput(kind=InputKind.ID_IMAGE, media_type="image/png"),
            model="m",
            max_tokens=1,
        )
    with pytest.raises(InputRejectedError):
        build_request(PreparedInput(kind=InputKind.TRANSCRIPT, text=""), model="m", max_tokens=1)
