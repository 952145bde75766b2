"""Recognizer backed by the Anthropic Messages API."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import ValidationError

from intakesync.adapters.http_resilience import ResilientClient
from intakesync.config import RecognitionConfig, get_recognition_config
from intakesync.domain.errors import InputRejectedError, UpstreamRecognitionError
from intakesync.domain.model import InputKind
from intakesync.domain.ports.recognition import RecognitionResponse

from .prompts import ID_DOCUMENT_PROMPT, transcript_prompt
from .schema import (
    ErrorResponse,
    ExtractionPayload,
    ImageBlock,
    ImageSource,
    Message,
    MessagesRequest,
    MessagesResponse,
    TextBlock,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from intakesync.config import ResilienceConfig
    from intakesync.domain.ports.recognition import PreparedInput, Recognizer

log = getLogger(__name__)

MESSAGES_PATH: Final[str] = "/v1/messages"
SERVICE_NAME: Final[str] = "anthropic"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def build_request(prepared: PreparedInput, *, model: str, max_tokens: int) -> MessagesRequest:
    """Build the Messages API request for an ID image or a transcript."""

    content: list[TextBlock | ImageBlock]
    if prepared.kind is InputKind.ID_IMAGE:
        if not prepared.image_base64 or not prepared.media_type:
            raise InputRejectedError("ID image input carries no image data")
        content = [
            TextBlock(text=ID_DOCUMENT_PROMPT),
            ImageBlock(
                source=ImageSource(media_type=prepared.media_type, data=prepared.image_base64)
            ),
        ]
    else:
        if not prepared.text:
            raise InputRejectedError(f"{prepared.kind} input carries no transcript text")
        content = [TextBlock(text=transcript_prompt(prepared.text))]
    return MessagesRequest(
        model=model,
        max_tokens=max_tokens,
        messages=[Message(role="user", content=content)],
    )


def parse_extraction(text: str) -> ExtractionPayload:
    """Pull the first-to-last brace span out of the model reply and validate it."""

    match = _JSON_OBJECT.search(text)
    if match is None:
        raise UpstreamRecognitionError(
            "Recognition reply contains no JSON object", service=SERVICE_NAME
        )
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise UpstreamRecognitionError(
            f"Recognition reply is not valid JSON: {exc}", service=SERVICE_NAME
        ) from exc
    if not isinstance(payload, dict):
        raise UpstreamRecognitionError("Recognition reply is not an object", service=SERVICE_NAME)
    try:
        return ExtractionPayload.model_validate(payload)
    except ValidationError as exc:
        raise UpstreamRecognitionError(
            f"Recognition reply has an unexpected shape: {exc}", service=SERVICE_NAME
        ) from exc


@dataclass(slots=True)
class AnthropicRecognizer:
    config: RecognitionConfig = field(default_factory=get_recognition_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def recognize(self, prepared: PreparedInput) -> RecognitionResponse:
        request = build_request(
            prepared,
            model=self.config.model,
            max_tokens=self.config.max_tokens,
        )
        reply = await self._send(request)
        text = reply.first_text()
        if text is None:
            raise UpstreamRecognitionError(
                "Recognition reply contains no text block", service=SERVICE_NAME
            )
        extraction = parse_extraction(text)
        log.debug(
            "Recognized %d field(s) from %s input (stop reason %s)",
            len(extraction.field_values()),
            prepared.kind,
            reply.stop_reason,
        )
        return RecognitionResponse(
            fields=extraction.field_values(),
            confidence=extraction.confidence,
            engine=reply.model or self.config.model,
        )

    async def _send(self, request: MessagesRequest) -> MessagesResponse:
        resilience = self.config.resolved_resilience()
        try:
            async with self.client_factory(resilience) as client:
                response = await client.post(
                    MESSAGES_PATH,
                    json=request.model_dump(mode="json"),
                )
        except httpx.HTTPError as exc:
            log.error("Recognition request failed: %s", exc)
            raise UpstreamRecognitionError(
                f"Recognition request failed: {exc}", service=SERVICE_NAME
            ) from exc

        if response.is_error:
            raise UpstreamRecognitionError(_error_message(response), service=SERVICE_NAME)
        try:
            return MessagesResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamRecognitionError(
                f"Unexpected recognition response: {exc}", service=SERVICE_NAME
            ) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        error = ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return f"Recognition service returned HTTP {response.status_code}"
    log.error(
        "Recognition API error %s (%s): %s",
        response.status_code,
        error.error.type,
        error.error.message,
    )
    return f"Recognition service returned HTTP {response.status_code}: {error.error.message}"


if TYPE_CHECKING:
    _recognizer_check: Recognizer = AnthropicRecognizer()
