"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .pipeline import PipelineConfig, get_pipeline_config
from .recognition import (
    RecognitionConfig,
    TranscriptionConfig,
    get_recognition_config,
    get_transcription_config,
    recognition_configured,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "PipelineConfig",
    "RateLimit",
    "RecognitionConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "TranscriptionConfig",
    "configure_logging",
    "get_database_config",
    "get_pipeline_config",
    "get_recognition_config",
    "get_storage_config",
    "get_transcription_config",
    "optional_env_var",
    "recognition_configured",
    "require_env_vars",
]
