"""Turn a raw recognizer response into a candidate field set."""

from __future__ import annotations

import math
from logging import getLogger
from typing import TYPE_CHECKING

from intakesync.domain.address import backfill_address
from intakesync.domain.model import CandidateFieldSet, FieldName, Inferred, SourceLabel

from .confidence import field_confidence
from .normalize import normalize_field

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from intakesync.domain.model import FieldState
    from intakesync.domain.ports.recognition import RecognitionResponse

log = getLogger(__name__)


def _reported_confidence(raw: object) -> float | None:
    if isinstance(raw, bool) or not isinstance(raw, int | float | str):
        return None
    try:
        score = float(raw)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(score):
        return None
    # automated sources never produce locked values
    return min(max(score, 0.0), 1.0)


def structure_fields(
    fields: Mapping[str, object],
    confidence: Mapping[str, object],
) -> dict[FieldName, FieldState]:
    """Keep schema fields, normalize them and attach a confidence to each.

    A one-line ``address`` is split into the structured address fields first.
    """

    fields, confidence = backfill_address(fields, confidence)
    states: dict[FieldName, FieldState] = {}
    ignored: list[str] = []
    for raw_name, raw_value in fields.items():
        try:
            name = FieldName(raw_name)
        except ValueError:
            ignored.append(raw_name)
            continue
        value = normalize_field(name, raw_value)
        if value is None:
            continue
        score = _reported_confidence(confidence.get(raw_name))
        if score is None:
            score = field_confidence(name, value)
        states[name] = Inferred(value, score)
    if ignored:
        log.debug("Ignoring fields outside the schema: %s", ", ".join(sorted(ignored)))
    return states


def structure_candidate(
    response: RecognitionResponse,
    *,
    source: SourceLabel = SourceLabel.POST_CALL,
    observed_at: datetime | None = None,
) -> CandidateFieldSet:
    states = structure_fields(response.fields, response.confidence)
    if observed_at is None:
        return CandidateFieldSet(states=states, source=source)
    return CandidateFieldSet(states=states, source=source, observed_at=observed_at)
