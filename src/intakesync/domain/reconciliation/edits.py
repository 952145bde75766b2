"""Operator edits and review helpers on authoritative records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from intakesync.domain.errors import InputRejectedError
from intakesync.domain.model import (
    LOCKED_SENTINEL,
    AuthoritativeRecord,
    Inferred,
    Locked,
    SourceLabel,
    canonicalize,
    field_name,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from intakesync.domain.model import FieldName, FieldState

LOW_CONFIDENCE_THRESHOLD: Final[float] = 0.7


def apply_user_edit(
    record: AuthoritativeRecord,
    name: str | FieldName,
    value: object,
    *,
    now: datetime | None = None,
) -> AuthoritativeRecord:
    """Lock ``name`` to an operator-supplied value.

    This is the only way to replace a locked value; automated merges never do.
    """

    resolved = field_name(name)
    text = canonicalize(resolved, value)
    if text is None:
        raise InputRejectedError(f"An edit for {resolved} needs a non-empty value")

    stamp = now or datetime.now(UTC)
    states: dict[FieldName, FieldState] = dict(record.states)
    sources = dict(record.sources)
    states[resolved] = Locked(text, LOCKED_SENTINEL)
    sources[resolved] = SourceLabel.USER_EDIT
    as_of = stamp if record.as_of is None else max(record.as_of, stamp)
    return AuthoritativeRecord(states=states, sources=sources, as_of=as_of)


def carry_locks(
    record: AuthoritativeRecord,
    later: Iterable[AuthoritativeRecord],
) -> AuthoritativeRecord:
    """Copy the locked fields of ``later`` records onto ``record``.

    ``later`` is taken oldest first, so the newest lock of a field wins. The
    result keeps ``record.as_of``.
    """

    states: dict[FieldName, FieldState] = dict(record.states)
    sources = dict(record.sources)
    for newer in later:
        for name, state in newer.present():
            if isinstance(state, Locked):
                states[name] = state
                sources[name] = SourceLabel.USER_EDIT
    return AuthoritativeRecord(states=states, sources=sources, as_of=record.as_of)


def low_confidence_fields(
    record: AuthoritativeRecord,
    *,
    threshold: float = LOW_CONFIDENCE_THRESHOLD,
) -> list[tuple[FieldName, float]]:
    """Inferred fields scoring below ``threshold``, lowest first."""

    flagged = [
        (name, state.confidence)
        for name, state in record.present()
        if isinstance(state, Inferred) and state.confidence < threshold
    ]
    return sorted(flagged, key=lambda item: item[1])
