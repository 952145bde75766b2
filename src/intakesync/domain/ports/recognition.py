"""Ports for external recognition services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from intakesync.domain.model import InputKind


@dataclass(frozen=True, slots=True, kw_only=True)
class PreparedInput:
    """Input ready for a recognizer: transcript text or an encoded image."""

    kind: InputKind
    text: str | None = None
    image_base64: str | None = None
    media_type: str | None = None
    filename: str | None = None


@dataclass(frozen=True, slots=True)
class RecognitionResponse:
    """Raw field values and scores as a recognizer reported them."""

    fields: Mapping[str, object]
    confidence: Mapping[str, object] = field(default_factory=dict[str, object])
    engine: str = "unknown"


@runtime_checkable
class Recognizer(Protocol):
    """Extract raw field values from prepared input.

    Implementations raise ``UpstreamRecognitionError`` when the service fails.
    """

    async def recognize(self, prepared: PreparedInput) -> RecognitionResponse: ...
