"""Field reconciliation: merge candidate sets into one authoritative record.

Sources are reconciled synchronously, one candidate at a time, in the order they
were observed: a previous record for the subject, then data captured during the
call, then the post-call extraction. Human edits are locked and survive every
automated merge.
"""

from __future__ import annotations

from .contracts import MergeResult, MergeRule
from .edits import (
    LOW_CONFIDENCE_THRESHOLD,
    apply_user_edit,
    carry_locks,
    low_confidence_fields,
)
from .merge import (
    MANUAL_REVIEW_THRESHOLD,
    fold,
    merge,
    merge_field,
    overall_confidence,
    requires_manual_review,
)

__all__ = [
    "LOW_CONFIDENCE_THRESHOLD",
    "MANUAL_REVIEW_THRESHOLD",
    "MergeResult",
    "MergeRule",
    "apply_user_edit",
    "carry_locks",
    "fold",
    "low_confidence_fields",
    "merge",
    "merge_field",
    "overall_confidence",
    "requires_manual_review",
]
