"""Extraction stage entry point."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from intakesync.domain.errors import RecognitionTimeoutError
from intakesync.domain.model import SourceLabel

from .structure import structure_candidate

if TYPE_CHECKING:
    from intakesync.domain.model import CandidateFieldSet
    from intakesync.domain.ports.recognition import PreparedInput, Recognizer

log = getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS: Final[float] = 60.0


@dataclass(slots=True)
class Extractor:
    """Delegate to a recognizer and structure its response.

    The recognizer call is bounded by ``timeout_seconds``; a timeout surfaces as
    ``RecognitionTimeoutError`` and is not retried here.
    """

    recognizer: Recognizer
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    source: SourceLabel = SourceLabel.POST_CALL

    async def extract(self, prepared: PreparedInput) -> CandidateFieldSet:
        try:
            async with asyncio.timeout(self.timeout_seconds):
                response = await self.recognizer.recognize(prepared)
        except TimeoutError as exc:
            raise RecognitionTimeoutError(
                f"Recognition did not finish within {self.timeout_seconds:g}s",
                service=type(self.recognizer).__name__,
            ) from exc

        candidate = structure_candidate(response, source=self.source)
        log.info(
            "Extracted %d field(s) from %s input using %s",
            len(candidate.states),
            prepared.kind,
            response.engine,
        )
        return candidate
