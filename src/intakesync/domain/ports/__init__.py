"""Domain port definitions for adapters."""

from __future__ import annotations

from .conversion import InputConverter, Transcriber
from .persistence import JobRepository
from .recognition import PreparedInput, RecognitionResponse, Recognizer
from .unit_of_work import JobRepositories, JobUnitOfWork, RepositoryCollection, UnitOfWork

__all__ = [
    "InputConverter",
    "JobRepositories",
    "JobRepository",
    "JobUnitOfWork",
    "PreparedInput",
    "RecognitionResponse",
    "Recognizer",
    "RepositoryCollection",
    "Transcriber",
    "UnitOfWork",
]
