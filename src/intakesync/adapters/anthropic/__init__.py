"""Public interface for the Anthropic recognition adapter."""

from __future__ import annotations

from .client import AnthropicRecognizer, build_request, parse_extraction
from .schema import ExtractionPayload, MessagesRequest, MessagesResponse

__all__ = [
    "AnthropicRecognizer",
    "ExtractionPayload",
    "MessagesRequest",
    "MessagesResponse",
    "build_request",
    "parse_extraction",
]
