"""Result types shared by the reconciliation stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from intakesync.domain.model import AuthoritativeRecord, FieldName


class MergeRule(StrEnum):
    """Which merge rule decided a field, kept for audit logging."""

    LOCKED = "locked"
    ADOPTED = "adopted"
    KEPT = "kept"
    AGREED = "agreed"
    HIGHER_CONFIDENCE = "higher_confidence"
    TIE = "tie"
    ABSENT = "absent"


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Outcome of merging one candidate set into an authoritative record."""

    record: AuthoritativeRecord
    overall_confidence: float
    decisions: Mapping[FieldName, MergeRule] = field(
        default_factory=dict["FieldName", "MergeRule"]
    )

    @property
    def merged_fields(self) -> dict[str, str]:
        return self.record.values()

    @property
    def merged_confidence(self) -> dict[str, float]:
        return self.record.confidences()

    @property
    def field_sources(self) -> dict[str, str]:
        return self.record.field_sources()

    def to_dict(self) -> dict[str, object]:
        return {
            "mergedFields": self.merged_fields,
            "mergedConfidence": self.merged_confidence,
            "fieldSources": self.field_sources,
            "overallConfidence": self.overall_confidence,
        }
