"""Per-field state and the field sets built from it.

Every field of a field set is exactly one of ``Unset``, ``Inferred`` (an automated
value with a confidence in ``[0, 1]``) or ``Locked`` (a human-authored value). A
locked field can only be replaced through an explicit operator edit; automated
merges never touch it.

At the boundary, field sets travel as a value map plus a confidence map. A
confidence strictly above ``1.0`` marks a locked field there, and the stored
sentinel lets the maps round-trip unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final, cast

from intakesync.domain.errors import SchemaViolationError
from intakesync.domain.model.enums import FieldName, SourceLabel
from intakesync.domain.model.schema import FIELD_NAMES, canonicalize, field_name

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

DEFAULT_CONFIDENCE: Final[float] = 0.7
LOCKED_SENTINEL: Final[float] = 1.5


@dataclass(frozen=True, slots=True)
class Unset:
    def __bool__(self) -> bool:
        return False


UNSET: Final[Unset] = Unset()


@dataclass(frozen=True, slots=True)
class Inferred:
    value: str
    confidence: float

    def __post_init__(self) -> None:
        if not self.value:
            raise SchemaViolationError("Inferred field values must be non-empty")
        if not 0.0 <= self.confidence <= 1.0:
            raise SchemaViolationError(
                f"Inferred confidence must be within [0, 1], got {self.confidence}"
            )


@dataclass(frozen=True, slots=True)
class Locked:
    value: str
    sentinel: float = LOCKED_SENTINEL

    def __post_init__(self) -> None:
        if not self.value:
            raise SchemaViolationError("Locked field values must be non-empty")
        if self.sentinel <= 1.0:
            raise SchemaViolationError(f"Locked sentinel must exceed 1.0, got {self.sentinel}")


type FieldState = Unset | Inferred | Locked


def state_value(state: FieldState) -> str | None:
    match state:
        case Inferred(value=value) | Locked(value=value):
            return value
        case _:
            return None


def state_confidence(state: FieldState) -> float | None:
    match state:
        case Inferred(confidence=confidence):
            return confidence
        case Locked(sentinel=sentinel):
            return sentinel
        case _:
            return None


def to_state(
    name: FieldName,
    value: object,
    confidence: float | None,
    *,
    default_confidence: float = DEFAULT_CONFIDENCE,
) -> FieldState:
    """Build a field state from boundary values."""

    text = canonicalize(name, value)
    if text is None:
        return UNSET
    if confidence is None:
        return Inferred(text, default_confidence)
    if confidence > 1.0:
        return Locked(text, confidence)
    if confidence < 0.0:
        raise SchemaViolationError(f"Negative confidence for {name}: {confidence}")
    return Inferred(text, confidence)


def _coerce_confidence(name: str, raw: object) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise SchemaViolationError(f"Confidence for {name} must be numeric, got {raw!r}")
    return float(raw)


def _states_from_maps(
    values: Mapping[str, object],
    confidences: Mapping[str, object] | None,
    *,
    default_confidence: float,
) -> dict[FieldName, FieldState]:
    confidence_map = confidences or {}
    for name in confidence_map:
        field_name(name)
    states: dict[FieldName, FieldState] = {}
    for raw_name, value in values.items():
        name = field_name(raw_name)
        confidence = _coerce_confidence(name, confidence_map.get(name))
        states[name] = to_state(name, value, confidence, default_confidence=default_confidence)
    return states


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _check_field_keys(states: Mapping[FieldName, FieldState]) -> None:
    for name in states:
        if not isinstance(name, FieldName):
            field_name(cast("str", name))


@dataclass(frozen=True, slots=True, kw_only=True)
class CandidateFieldSet:
    """One source's proposed values, each with its own state."""

    states: Mapping[FieldName, FieldState]
    source: SourceLabel
    observed_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        _check_field_keys(self.states)

    @classmethod
    def from_maps(
        cls,
        values: Mapping[str, object],
        confidences: Mapping[str, object] | None = None,
        *,
        source: SourceLabel,
        observed_at: datetime | None = None,
        default_confidence: float = DEFAULT_CONFIDENCE,
    ) -> CandidateFieldSet:
        return cls(
            states=_states_from_maps(values, confidences, default_confidence=default_confidence),
            source=source,
            observed_at=observed_at or _utcnow(),
        )

    def state(self, name: FieldName) -> FieldState:
        return self.states.get(name, UNSET)

    def present(self) -> Iterator[tuple[FieldName, FieldState]]:
        for name in FIELD_NAMES:
            state = self.state(name)
            if state:
                yield name, state

    def to_maps(self) -> tuple[dict[str, str], dict[str, float]]:
        values: dict[str, str] = {}
        confidences: dict[str, float] = {}
        for name, state in self.present():
            values[name] = cast("str", state_value(state))
            confidences[name] = cast("float", state_confidence(state))
        return values, confidences

    def to_dict(self) -> dict[str, object]:
        values, confidences = self.to_maps()
        return {
            "source": str(self.source),
            "observedAt": self.observed_at.isoformat(),
            "fields": values,
            "confidence": confidences,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> CandidateFieldSet:
        return cls.from_maps(
            cast("Mapping[str, object]", payload.get("fields") or {}),
            cast("Mapping[str, object] | None", payload.get("confidence")),
            source=SourceLabel(cast("str", payload["source"])),
            observed_at=datetime.fromisoformat(cast("str", payload["observedAt"])),
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class AuthoritativeRecord:
    """The merged field set with provenance per field."""

    states: Mapping[FieldName, FieldState] = field(default_factory=dict["FieldName", "FieldState"])
    sources: Mapping[FieldName, SourceLabel] = field(
        default_factory=dict["FieldName", "SourceLabel"]
    )
    as_of: datetime | None = None

    def __post_init__(self) -> None:
        _check_field_keys(self.states)
        for name in self.sources:
            if not self.state(name):
                raise SchemaViolationError(f"Provenance recorded for unset field {name}")

    @classmethod
    def empty(cls) -> AuthoritativeRecord:
        return cls()

    @classmethod
    def from_maps(
        cls,
        values: Mapping[str, object],
        confidences: Mapping[str, object] | None = None,
        sources: Mapping[str, str] | None = None,
        *,
        as_of: datetime | None = None,
        default_confidence: float = DEFAULT_CONFIDENCE,
    ) -> AuthoritativeRecord:
        states = _states_from_maps(values, confidences, default_confidence=default_confidence)
        resolved_sources: dict[FieldName, SourceLabel] = {}
        for raw_name, label in (sources or {}).items():
            name = field_name(raw_name)
            if states.get(name):
                resolved_sources[name] = SourceLabel(label)
        return cls(states=states, sources=resolved_sources, as_of=as_of)

    def state(self, name: FieldName) -> FieldState:
        return self.states.get(name, UNSET)

    def source(self, name: FieldName) -> SourceLabel | None:
        return self.sources.get(name)

    def present(self) -> Iterator[tuple[FieldName, FieldState]]:
        for name in FIELD_NAMES:
            state = self.state(name)
            if state:
                yield name, state

    def is_empty(self) -> bool:
        return next(self.present(), None) is None

    def values(self) -> dict[str, str]:
        return {name: cast("str", state_value(state)) for name, state in self.present()}

    def confidences(self) -> dict[str, float]:
        return {name: cast("float", state_confidence(state)) for name, state in self.present()}

    def field_sources(self) -> dict[str, str]:
        return {str(name): str(label) for name, label in self.sources.items()}

    def to_dict(self) -> dict[str, object]:
        return {
            "fields": self.values(),
            "confidence": self.confidences(),
            "fieldSources": self.field_sources(),
            "asOf": self.as_of.isoformat() if self.as_of else None,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> AuthoritativeRecord:
        as_of = payload.get("asOf")
        return cls.from_maps(
            cast("Mapping[str, object]", payload.get("fields") or {}),
            cast("Mapping[str, object] | None", payload.get("confidence")),
            cast("Mapping[str, str] | None", payload.get("fieldSources")),
            as_of=datetime.fromisoformat(as_of) if isinstance(as_of, str) else None,
        )
