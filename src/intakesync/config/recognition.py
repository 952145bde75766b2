"""Recognition and transcription service configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_float, optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

ANTHROPIC_BASE_URL: Final[str] = "https://api.anthropic.com"
ANTHROPIC_API_VERSION: Final[str] = "2023-06-01"
DEFAULT_RECOGNITION_MODEL: Final[str] = "claude-sonnet-4-5-20250929"
DEFAULT_MAX_TOKENS: Final[int] = 2048

OPENAI_BASE_URL: Final[str] = "https://api.openai.com"
DEFAULT_TRANSCRIPTION_MODEL: Final[str] = "whisper-1"

DEFAULT_HTTP_TIMEOUT_SECONDS: Final[float] = 60.0


@dataclass(frozen=True, slots=True)
class RecognitionConfig:
    """Credentials and model selection for the field recognition service."""

    api_key: str
    model: str = DEFAULT_RECOGNITION_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    api_version: str = ANTHROPIC_API_VERSION
    resilience: ResilienceConfig | None = None

    def resolved_resilience(self) -> ResilienceConfig:
        if self.resilience is not None:
            return self.resilience
        return ResilienceConfig(
            name="anthropic",
            base_url=ANTHROPIC_BASE_URL,
            timeout_seconds=env_float("INTAKESYNC_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS),
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            default_headers={
                "x-api-key": self.api_key,
                "anthropic-version": self.api_version,
            },
        )


@dataclass(frozen=True, slots=True)
class TranscriptionConfig:
    """Credentials and model selection for the speech-to-text service."""

    api_key: str
    model: str = DEFAULT_TRANSCRIPTION_MODEL
    language: str = "en"
    resilience: ResilienceConfig | None = None

    def resolved_resilience(self) -> ResilienceConfig:
        if self.resilience is not None:
            return self.resilience
        return ResilienceConfig(
            name="whisper",
            base_url=OPENAI_BASE_URL,
            timeout_seconds=env_float("INTAKESYNC_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS),
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            default_headers={"Authorization": f"Bearer {self.api_key}"},
        )


def get_recognition_config() -> RecognitionConfig:
    values = require_env_vars(("ANTHROPIC_API_KEY",))
    return RecognitionConfig(
        api_key=values["ANTHROPIC_API_KEY"],
        model=optional_env_var("INTAKESYNC_RECOGNITION_MODEL") or DEFAULT_RECOGNITION_MODEL,
    )


def get_transcription_config() -> TranscriptionConfig:
    values = require_env_vars(("OPENAI_API_KEY",))
    return TranscriptionConfig(
        api_key=values["OPENAI_API_KEY"],
        model=optional_env_var("INTAKESYNC_TRANSCRIPTION_MODEL") or DEFAULT_TRANSCRIPTION_MODEL,
    )


def recognition_configured() -> bool:
    return optional_env_var("ANTHROPIC_API_KEY") is not None
