"""Ports for turning raw input references into recognizer input."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from intakesync.domain.model import InputReference
    from intakesync.domain.ports.recognition import PreparedInput


@runtime_checkable
class InputConverter(Protocol):
    """Load and convert a job's raw input. Raises ``InputRejectedError`` for bad input."""

    async def prepare(self, reference: InputReference) -> PreparedInput: ...


@runtime_checkable
class Transcriber(Protocol):
    """Speech-to-text for recorded calls."""

    async def transcribe(self, path: Path, *, mime_type: str | None = None) -> str: ...
