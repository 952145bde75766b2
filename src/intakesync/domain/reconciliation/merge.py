"""Confidence-weighted, field-by-field merge of candidate sets.

For every schema field the rules apply in order:

1. a locked existing value is kept, whatever the incoming side holds;
2. an incoming value fills an absent existing value;
3. an existing value survives an absent incoming value;
4. when both are present the higher confidence wins and an exact tie goes to
   the incoming value, tagged ``post_call_tie``;
5. a field absent on both sides stays absent.

The merge is pure. Callers fold candidates in chronological order, and an
incoming set observed before the record it is merged into is rejected.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from intakesync.domain.errors import MergeOrderError
from intakesync.domain.model import (
    FIELD_NAMES,
    UNSET,
    AuthoritativeRecord,
    Inferred,
    Locked,
    SourceLabel,
    Unset,
)

from .contracts import MergeResult, MergeRule

if TYPE_CHECKING:
    from collections.abc import Iterable

    from intakesync.domain.model import CandidateFieldSet, FieldName, FieldState

log = getLogger(__name__)

MANUAL_REVIEW_THRESHOLD: Final[float] = 0.5
EXISTING_DEFAULT_SOURCE: Final[SourceLabel] = SourceLabel.REALTIME

type FieldOutcome = tuple[FieldState, SourceLabel | None, MergeRule]


def merge_field(
    existing: FieldState,
    existing_source: SourceLabel | None,
    incoming: FieldState,
    incoming_source: SourceLabel,
) -> FieldOutcome:
    """Decide one field. Returns the winning state, its label and the rule used."""

    kept_label = existing_source or EXISTING_DEFAULT_SOURCE
    match existing, incoming:
        case Locked(), _:
            return existing, SourceLabel.USER_EDIT, MergeRule.LOCKED
        case Unset(), Unset():
            return UNSET, None, MergeRule.ABSENT
        case Unset(), Locked():
            return incoming, SourceLabel.USER_EDIT, MergeRule.ADOPTED
        case Unset(), _:
            return incoming, incoming_source, MergeRule.ADOPTED
        case _, Unset():
            return existing, kept_label, MergeRule.KEPT
        case _, Locked():
            return incoming, SourceLabel.USER_EDIT, MergeRule.HIGHER_CONFIDENCE
        case Inferred(value=old_value, confidence=old), Inferred(value=new_value, confidence=new):
            if new > old:
                return incoming, incoming_source, MergeRule.HIGHER_CONFIDENCE
            if new < old:
                return existing, kept_label, MergeRule.KEPT
            if new_value == old_value:
                # same value at the same confidence: nothing to arbitrate
                return existing, kept_label, MergeRule.AGREED
            return incoming, SourceLabel.POST_CALL_TIE, MergeRule.TIE
        case _:
            raise TypeError(f"Unsupported field states: {existing!r}, {incoming!r}")


def merge(existing: AuthoritativeRecord, incoming: CandidateFieldSet) -> MergeResult:
    """Merge ``incoming`` into ``existing`` and return the new record."""

    if existing.as_of is not None and incoming.observed_at < existing.as_of:
        raise MergeOrderError(
            f"{incoming.source} candidate observed at {incoming.observed_at.isoformat()} "
            f"predates the record as of {existing.as_of.isoformat()}"
        )

    states: dict[FieldName, FieldState] = {}
    sources: dict[FieldName, SourceLabel] = {}
    decisions: dict[FieldName, MergeRule] = {}
    for name in FIELD_NAMES:
        state, label, rule = merge_field(
            existing.state(name),
            existing.source(name),
            incoming.state(name),
            incoming.source,
        )
        decisions[name] = rule
        if not state:
            continue
        states[name] = state
        if label is not None:
            sources[name] = label

    record = AuthoritativeRecord(states=states, sources=sources, as_of=incoming.observed_at)
    overall = overall_confidence(record.states.values())
    log.debug(
        "Merged %s candidate: %s",
        incoming.source,
        {str(name): str(rule) for name, rule in decisions.items() if rule is not MergeRule.ABSENT},
    )
    return MergeResult(record=record, overall_confidence=overall, decisions=decisions)


def fold(
    record: AuthoritativeRecord,
    candidates: Iterable[CandidateFieldSet],
) -> MergeResult:
    """Merge candidates into ``record`` one after another, oldest first."""

    result = MergeResult(
        record=record,
        overall_confidence=overall_confidence(record.states.values()),
    )
    for candidate in candidates:
        result = merge(result.record, candidate)
    return result


def overall_confidence(states: Iterable[FieldState]) -> float:
    """Mean confidence of inferred fields; locked and unset fields are left out."""

    scores = [state.confidence for state in states if isinstance(state, Inferred)]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def requires_manual_review(
    overall: float,
    *,
    threshold: float = MANUAL_REVIEW_THRESHOLD,
) -> bool:
    return overall < threshold
