"""Extraction stage: recognizer output to candidate field sets."""

from __future__ import annotations

from .confidence import DEFAULT_FIELD_CONFIDENCE, field_confidence
from .extractor import Extractor
from .normalize import NORMALIZERS, normalize_dob, normalize_field, parse_spoken_date
from .patterns import PatternRecognizer, scan_transcript
from .structure import structure_candidate, structure_fields

__all__ = [
    "DEFAULT_FIELD_CONFIDENCE",
    "NORMALIZERS",
    "Extractor",
    "PatternRecognizer",
    "field_confidence",
    "normalize_dob",
    "normalize_field",
    "parse_spoken_date",
    "scan_transcript",
    "structure_candidate",
    "structure_fields",
]
