"""Pydantic models describing the Anthropic Messages API payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnthropicBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ImageSource(AnthropicBaseModel):
    type: Literal["base64"] = "base64"
    media_type: str
    data: str


class TextBlock(AnthropicBaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageBlock(AnthropicBaseModel):
    type: Literal["image"] = "image"
    source: ImageSource


class Message(AnthropicBaseModel):
    role: Literal["user", "assistant"] = "user"
    content: list[TextBlock | ImageBlock]


class MessagesRequest(AnthropicBaseModel):
    model: str
    max_tokens: int
    messages: list[Message]


class ResponseBlock(AnthropicBaseModel):
    type: str
    text: str | None = None


class MessagesResponse(AnthropicBaseModel):
    id: str | None = None
    model: str | None = None
    stop_reason: str | None = None
    content: list[ResponseBlock] = Field(default_factory=list[ResponseBlock])

    def first_text(self) -> str | None:
        for block in self.content:
            if block.type == "text" and block.text:
                return block.text
        return None


class ErrorDetail(AnthropicBaseModel):
    type: str
    message: str


class ErrorResponse(AnthropicBaseModel):
    type: Literal["error"] = "error"
    error: ErrorDetail


class ExtractionPayload(BaseModel):
    """The JSON object the model answers with: field values plus a confidence map."""

    model_config = ConfigDict(extra="allow")

    confidence: dict[str, object] = Field(default_factory=dict[str, object])

    @field_validator("confidence", mode="before")
    @classmethod
    def _null_to_empty(cls, value: object) -> object:
        return {} if value is None else value

    def field_values(self) -> dict[str, object]:
        return dict(self.model_extra or {})
